# src/models/user.py
import json
from datetime import datetime

from sqlalchemy import Column, String, Integer, Text, DateTime, Boolean, Float, ForeignKey, CheckConstraint

from .database import Base


class User(Base):
    """Marketplace account. Credits are the client's spendable balance."""
    __tablename__ = "users"
    __table_args__ = (CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),)

    id = Column(String(36), primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=False, unique=True)
    role = Column(String(20), nullable=False, default="CLIENT")
    phone = Column(String(32), nullable=True)
    credits = Column(Integer, nullable=False, default=0)
    notification_preferences_json = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def notification_preferences(self) -> dict:
        prefs = {"email": True, "whatsapp": True, "in_app": True}
        if self.notification_preferences_json:
            prefs.update(json.loads(self.notification_preferences_json))
        return prefs


class FreelancerProfile(Base):
    """Artist profile: availability flags, skills and performance counters.

    Owned by the onboarding/admin flows; the assignment engine only reads it.
    """
    __tablename__ = "freelancer_profiles"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    status = Column(String(20), nullable=False, default="PENDING")
    availability = Column(Boolean, nullable=False, default=True)
    timezone = Column(String(64), nullable=True)
    experience_level = Column(String(20), nullable=False, default="JUNIOR")
    rating = Column(Float, nullable=False, default=0.0)
    completed_tasks = Column(Integer, nullable=False, default=0)
    acceptance_rate = Column(Float, nullable=True)
    on_time_rate = Column(Float, nullable=True)
    avg_response_time_minutes = Column(Integer, nullable=True)
    max_concurrent_tasks = Column(Integer, nullable=False, default=5)
    working_hours_start = Column(String(5), nullable=False, default="09:00")
    working_hours_end = Column(String(5), nullable=False, default="18:00")
    accepts_urgent_tasks = Column(Boolean, nullable=False, default=True)
    vacation_mode = Column(Boolean, nullable=False, default=False)
    skills_json = Column(Text, nullable=True)
    specializations_json = Column(Text, nullable=True)
    preferred_categories_json = Column(Text, nullable=True)
    whatsapp_number = Column(String(32), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class ClientArtistAffinity(Base):
    """Client-side preference for an artist (favorites earn a scoring bonus)"""
    __tablename__ = "client_artist_affinity"

    id = Column(String(36), primary_key=True, index=True)
    client_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    artist_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_favorite = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
