# app/models/subscription_model.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, func
from sqlalchemy.orm import relationship

from .base import Base

class Subscription(Base):
    __tablename__ = 'subscriptions'
    __table_args__ = (
        Index("ix_subscriptions_user_status", "user_id", "status"),
    )
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    plan_id = Column(String(50), nullable=False)

    # pending -> active -> cancelled | expired
    status = Column(String(20), default='pending', nullable=False)

    activated_at = Column(DateTime)
    expires_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    payment_id = Column(String, index=True)  # Razorpay payment id
    order_id = Column(String, index=True)    # Razorpay order id
    amount = Column(Integer, default=0)
    currency = Column(String(10), default="INR")
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("Users", back_populates="subscriptions")
