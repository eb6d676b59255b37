"""
Проверка Bearer-токена во входящем webhook от триггера Supabase.

Триггер шлёт ``Authorization: Bearer <SUPABASE_WEBHOOK_TOKEN>``.
В отличие от обычных API, неверный токен не даёт 401/403: webhook
отвечает 200 ``IGNORED_BAD_TOKEN``, чтобы триггер не повторял вызов.
Поэтому здесь нет HTTPException — только результат проверки.
"""
import hmac

_BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: str | None) -> str:
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        return ""
    return authorization[len(_BEARER_PREFIX):]


def bearer_token_matches(authorization: str | None, expected: str) -> bool:
    """
    True только если секрет настроен и токен совпадает.

    - секрет пуст — False (без секрета все вызовы игнорируются)
    - заголовок отсутствует или не Bearer — False
    """
    if not expected:
        return False
    token = extract_bearer_token(authorization)
    if not token:
        return False
    # сравнение, устойчивое к timing attacks
    return hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))
