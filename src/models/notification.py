# src/models/notification.py
from datetime import datetime

from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey

from .database import Base


class NotificationOutbox(Base):
    """Notification intent written in the same transaction as the task.

    recipient_id is NULL for admin broadcasts.
    """
    __tablename__ = "notification_outbox"

    id = Column(String(36), primary_key=True, index=True)
    event_type = Column(String(50), nullable=False)
    recipient_id = Column(String(36), nullable=True, index=True)
    task_id = Column(String(36), nullable=True, index=True)
    payload_json = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default="PENDING", index=True)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    sent_at = Column(DateTime, nullable=True)


class Notification(Base):
    """In-app notification shown in the user's bell"""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    channel = Column(String(16), nullable=False, default="IN_APP")
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    related_task_id = Column(String(36), nullable=True)
    status = Column(String(16), nullable=False, default="SENT")
    sent_at = Column(DateTime, nullable=True)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
