# app/models/usage_model.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, func

from .base import Base


class UsagePeriod(Base):
    __tablename__ = "usage_periods"
    __table_args__ = (
        UniqueConstraint("user_id", "month_year", name="uq_usage_periods_user_month"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    month_year = Column(String(7), nullable=False)  # YYYY-MM

    characters_used = Column(Integer, nullable=False, default=0)
    api_calls = Column(Integer, nullable=False, default=0)
    artifacts_generated = Column(Integer, nullable=False, default=0)

    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
