from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Index
from sqlalchemy.orm import relationship
from sqlalchemy import func

from .base import Base


class PaymentOrder(Base):
    __tablename__ = "payment_orders"
    __table_args__ = (
        Index("ix_payment_orders_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), nullable=True)

    order_id = Column(String, unique=True, nullable=False)
    payment_id = Column(String, unique=True, nullable=True)
    signature = Column(String, nullable=True)

    plan_id = Column(String(50), nullable=False)
    amount = Column(Integer, nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="INR")

    status = Column(String(20), nullable=False, default="pending")  # pending|completed|failed|refunded
    metadata_json = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    completed_at = Column(DateTime, nullable=True)

    user = relationship("Users", back_populates="payment_orders")
    subscription = relationship("Subscription")
