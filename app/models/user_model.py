from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    func,
)
from sqlalchemy.orm import relationship
from app.models.base import Base


class Users(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    name = Column(String(255))
    email = Column(String(255), unique=True, index=True, nullable=True)
    # Mirrors the plan of the active subscription; "free" when there is none
    plan = Column(String(50), nullable=False, default="free")
    created_at = Column(DateTime, server_default=func.now())

    subscriptions = relationship("Subscription", back_populates="user")
    payment_orders = relationship("PaymentOrder", back_populates="user")
