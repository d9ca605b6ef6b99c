from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class CreateOrderRequest(BaseModel):
    planId: str


class OrderInfo(BaseModel):
    id: str
    amount: int
    currency: str
    planId: str
    planName: str


class CreateOrderResponse(BaseModel):
    success: bool = True
    order: OrderInfo
    key: Optional[str] = None


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)
    planId: Optional[str] = None


class ActivatedSubscription(BaseModel):
    plan: str
    planName: str
    status: str
    expiresAt: Optional[datetime] = None


class VerifyPaymentResponse(BaseModel):
    success: bool = True
    message: str
    subscription: ActivatedSubscription


class PaymentHistoryItem(BaseModel):
    orderId: str
    paymentId: Optional[str] = None
    planId: str
    amount: int
    currency: str
    status: str
    createdAt: datetime
    completedAt: Optional[datetime] = None


class PaymentHistoryResponse(BaseModel):
    success: bool = True
    payments: List[PaymentHistoryItem]
