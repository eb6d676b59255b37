"""
Payments API — создание платежа Tinkoff для корзины.
"""
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from app.api.webhooks.order_notify import read_json_body
from app.core.logging import get_logger
from app.domain.services.payment_service import PaymentInitRequest, PaymentService

logger = get_logger(__name__)

router = APIRouter()


class PaymentInitResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payment_url: str = Field(alias="paymentUrl")
    payment_id: str = Field(alias="paymentId")


def get_payment_service() -> PaymentService:
    return PaymentService()


@router.post(
    "/init",
    summary="Создание платежа (Tinkoff Init)",
    description=(
        "Тело: `amount` (копейки, > 0), `orderId`, опционально `description`, "
        "`customerKey`, `successUrl`, `failUrl`, `receipt` (чек, в подпись не входит). "
        "Ответ: ссылка на платёжную форму и идентификатор платежа."
    ),
    response_model=PaymentInitResponse,
    response_model_by_alias=True,
)
async def init_payment(
    request: Request,
    service: PaymentService = Depends(get_payment_service),
) -> PaymentInitResponse:
    body = await read_json_body(request)
    init_request = PaymentInitRequest.from_body(body)
    result = await service.init_payment(init_request)

    logger.info(
        "Payment initialized",
        extra_data={"order_id": init_request.order_id, "payment_id": result.payment_id},
    )
    return PaymentInitResponse(payment_url=result.payment_url, payment_id=result.payment_id)


# старый адрес серверной функции витрины
legacy_router = APIRouter()
legacy_router.add_api_route(
    "/tinkoff-init",
    init_payment,
    methods=["POST"],
    response_model=PaymentInitResponse,
    response_model_by_alias=True,
)
