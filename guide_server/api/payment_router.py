# guide_server/api/payment_router.py

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import AliasChoices, BaseModel, Field

from guide_server.models.payment import PaymentStatus
from guide_server.services.confirmation_service import PaymentConfirmationService

router = APIRouter()


def get_confirmation_service(request: Request) -> PaymentConfirmationService:
    return request.app.state.confirmation


# ---------- MODELS ----------
class VerifyPaymentRequest(BaseModel):
    # Accepts both our field names and the raw names from the Razorpay checkout handler
    order_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("orderId", "razorpay_order_id", "order_id")
    )
    payment_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("paymentId", "razorpay_payment_id", "payment_id")
    )
    signature: Optional[str] = Field(
        None, validation_alias=AliasChoices("signature", "razorpay_signature")
    )


# ---------- CREATE ORDER ----------
@router.post("/create-order")
async def create_order(
    service: PaymentConfirmationService = Depends(get_confirmation_service),
):
    """Create a gateway order for the guide. Amount and currency are fixed server-side."""
    order = await service.create_order()
    return {
        "orderId": order.order_id,
        "amount": order.amount,
        "currency": order.currency,
        "keyId": service.gateway.key_id,
    }


# ---------- VERIFY PAYMENT ----------
@router.post("/verify-payment")
async def verify_payment(
    body: VerifyPaymentRequest,
    service: PaymentConfirmationService = Depends(get_confirmation_service),
):
    """
    Checks the checkout signature, asks the gateway for the real status and,
    for a captured payment, returns the one-time download token.
    Not captured yet -> {"status": "pending"}; the client polls check-status.
    """
    result = await service.confirm(body.order_id, body.payment_id, body.signature)

    if result.granted:
        return {
            "success": True,
            "status": result.payment_status.value,
            "granted": result.token,
            "downloadToken": result.token,
            "downloadUrl": f"/api/download/{result.token}",
        }

    return {
        "success": False,
        "status": "pending",
        "paymentStatus": result.payment_status.value,
        "retryAfter": result.retry_after,
        "message": "Payment not completed yet",
    }


# ---------- CHECK STATUS ----------
@router.get("/check-status")
async def check_status(
    paymentId: Optional[str] = Query(None),
    payment_id: Optional[str] = Query(None),
    service: PaymentConfirmationService = Depends(get_confirmation_service),
):
    payment = await service.check_status(paymentId or payment_id)
    captured = payment.status == PaymentStatus.CAPTURED
    status = payment.raw_status or payment.status.value
    return {
        "success": captured,
        "status": status,
        "message": "Payment captured" if captured else f"Payment status: {status}",
    }
