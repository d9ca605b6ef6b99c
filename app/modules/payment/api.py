from fastapi import APIRouter, Depends, Query

from app.core.context import ServiceContext
from app.core.dependencies import get_current_user, get_services
from app.models.user_model import Users
from app.modules.payment.schemas import (
    ActivatedSubscription,
    CreateOrderRequest,
    CreateOrderResponse,
    OrderInfo,
    PaymentHistoryItem,
    PaymentHistoryResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)

router = APIRouter()


@router.post("/payments/create-order", response_model=CreateOrderResponse, tags=["Payments"])
async def create_order(
    request: CreateOrderRequest,
    current_user: Users = Depends(get_current_user),
    services: ServiceContext = Depends(get_services),
):
    order = await services.payments.create_order(current_user, request.planId)
    return CreateOrderResponse(order=OrderInfo(**order), key=services.settings.RAZORPAY_KEY_ID)


@router.post("/payments/verify", response_model=VerifyPaymentResponse, tags=["Payments"])
async def verify_payment(
    request: VerifyPaymentRequest,
    current_user: Users = Depends(get_current_user),
    services: ServiceContext = Depends(get_services),
):
    """
    Verify a checkout signature and activate the purchased plan. Repeating
    the call for an already verified order returns the same subscription.
    """
    result = await services.payments.verify_and_activate(
        user_id=current_user.id,
        order_id=request.razorpay_order_id,
        payment_id=request.razorpay_payment_id,
        signature=request.razorpay_signature,
    )
    message = (
        "Payment already verified"
        if result.already_processed
        else "Payment verified and subscription activated"
    )
    return VerifyPaymentResponse(
        message=message,
        subscription=ActivatedSubscription(
            plan=result.plan.id,
            planName=result.plan.name,
            status=result.subscription.status,
            expiresAt=result.subscription.expires_at,
        ),
    )


@router.get("/payments/history", response_model=PaymentHistoryResponse, tags=["Payments"])
async def payment_history(
    limit: int = Query(default=10, ge=1, le=100),
    current_user: Users = Depends(get_current_user),
    services: ServiceContext = Depends(get_services),
):
    async with services.session_factory() as db:
        orders = await services.payments.history(db, current_user.id, limit=limit)
    return PaymentHistoryResponse(
        payments=[
            PaymentHistoryItem(
                orderId=order.order_id,
                paymentId=order.payment_id,
                planId=order.plan_id,
                amount=order.amount,
                currency=order.currency,
                status=order.status,
                createdAt=order.created_at,
                completedAt=order.completed_at,
            )
            for order in orders
        ]
    )
