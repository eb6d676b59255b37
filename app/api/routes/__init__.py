"""
API Routes
"""
from fastapi import APIRouter

from app.api.routes.payments import (
    legacy_router as payments_legacy_router,
    router as payments_router,
)
from app.api.routes.whatsapp import (
    legacy_router as whatsapp_legacy_router,
    router as whatsapp_router,
)
from app.api.webhooks.order_notify import router as order_notify_router
from app.api.webhooks.payment_callback import (
    legacy_router as payment_callback_legacy_router,
    router as payment_callback_router,
)

router = APIRouter()

# Canonical endpoints (documented)
router.include_router(order_notify_router, tags=["webhooks"])
router.include_router(payments_router, prefix="/payments", tags=["payments"])
router.include_router(payment_callback_router, prefix="/payments", tags=["webhooks"])
router.include_router(whatsapp_router, prefix="/whatsapp", tags=["whatsapp"])

# Backwards-compatible endpoints
router.include_router(payments_legacy_router, tags=["payments"], include_in_schema=False)
router.include_router(
    payment_callback_legacy_router,
    tags=["webhooks"],
    include_in_schema=False
)
router.include_router(whatsapp_legacy_router, tags=["whatsapp"], include_in_schema=False)
