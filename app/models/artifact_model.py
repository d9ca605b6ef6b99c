# app/models/artifact_model.py
from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey, Text, JSON, Index

from .base import Base


class AudioArtifact(Base):
    __tablename__ = "audio_artifacts"
    __table_args__ = (
        Index("ix_audio_artifacts_expires_at", "expires_at"),
        Index("ix_audio_artifacts_user_created", "user_id", "created_at"),
    )

    id = Column(String(32), primary_key=True)  # uuid4 hex, also embedded in the filename
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)  # null for anonymous callers
    filename = Column(String, unique=True, nullable=False)
    provider = Column(String(20), nullable=False)
    content_type = Column(String(50), nullable=False)

    text = Column(Text, nullable=False)
    text_length = Column(Integer, nullable=False)
    voice = Column(String(100), nullable=False)
    language = Column(String(20), nullable=False)
    file_size = Column(Integer, nullable=True)
    duration = Column(Float, nullable=True)
    settings = Column(JSON, default=dict)

    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)
