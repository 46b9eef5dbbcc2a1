# src/models/task.py
from datetime import datetime

from sqlalchemy import Column, String, Integer, Text, DateTime, Boolean, Float, ForeignKey

from .database import Base


class TaskCategory(Base):
    """Admin-editable task category, looked up by slug"""
    __tablename__ = "task_categories"

    id = Column(String(36), primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    slug = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    base_credits = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class Task(Base):
    """Design task.

    The assignment engine only ever writes PENDING or ASSIGNED; the later
    lifecycle states belong to the delivery flows.
    """
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, index=True)
    client_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    freelancer_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    category_id = Column(String(36), ForeignKey("task_categories.id"), nullable=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(24), nullable=False, default="PENDING", index=True)
    complexity = Column(String(16), nullable=True)
    urgency = Column(String(16), nullable=True)
    requirements_json = Column(Text, nullable=True)
    required_skills_json = Column(Text, nullable=True)
    style_references_json = Column(Text, nullable=True)
    moodboard_items_json = Column(Text, nullable=True)
    chat_history_json = Column(Text, nullable=True)
    brief_id = Column(String(36), nullable=True)
    estimated_hours = Column(Float, nullable=True)
    credits_used = Column(Integer, nullable=False, default=1)
    max_revisions = Column(Integer, nullable=False, default=2)
    revisions_used = Column(Integer, nullable=False, default=0)
    deadline = Column(DateTime, nullable=True)
    assigned_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class TaskFile(Base):
    """Link from a task to an uploaded file (attachments and deliverables)"""
    __tablename__ = "task_files"

    id = Column(String(36), primary_key=True, index=True)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    uploaded_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_url = Column(Text, nullable=False)
    file_type = Column(String(100), nullable=False)
    file_size = Column(Integer, nullable=False)
    is_deliverable = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class TaskOffer(Base):
    """Audit record of an artist being offered (and here, given) a task"""
    __tablename__ = "task_offers"

    id = Column(String(36), primary_key=True, index=True)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    artist_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    match_score = Column(Float, nullable=False)
    score_breakdown_json = Column(Text, nullable=True)
    escalation_level = Column(Integer, nullable=False, default=1)
    offered_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False)
    response = Column(String(16), nullable=False, default="PENDING")
    responded_at = Column(DateTime, nullable=True)


class TaskActivityLog(Base):
    """Append-only audit trail of task status changes"""
    __tablename__ = "task_activity_log"

    id = Column(String(36), primary_key=True, index=True)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    actor_id = Column(String(36), nullable=True)
    actor_type = Column(String(20), nullable=False)
    action = Column(String(50), nullable=False)
    previous_status = Column(String(24), nullable=True)
    new_status = Column(String(24), nullable=True)
    metadata_json = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class CreditTransaction(Base):
    """Append-only credit ledger entry (negative amount for usage)"""
    __tablename__ = "credit_transactions"

    id = Column(String(36), primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    type = Column(String(16), nullable=False)
    description = Column(Text, nullable=True)
    related_task_id = Column(String(36), ForeignKey("tasks.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class AssignmentAlgorithmConfig(Base):
    """Versioned scoring configuration; at most one version is active"""
    __tablename__ = "assignment_algorithm_config"

    id = Column(String(36), primary_key=True, index=True)
    version = Column(Integer, nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=False)
    config_json = Column(Text, nullable=False)
    published_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
