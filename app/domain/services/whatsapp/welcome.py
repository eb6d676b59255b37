"""
Приветственное сообщение подписчику рассылки.
"""
from typing import Optional

from app.core.config import settings


def build_welcome_message(name: Optional[str] = None, promo_code: Optional[str] = None) -> str:
    name = (name or "").strip()
    promo_code = (promo_code or "").strip()

    text = f"Здравствуйте{', ' + name if name else ''}! Спасибо, что подписались на рассылку 🌸"
    if promo_code:
        text += f"\nВаш приветственный промокод: {promo_code}"
    else:
        text += "\nСкоро пришлём вам промокод в этот чат."
    return f"{text}\n{settings.SHOP_SIGNATURE}"
