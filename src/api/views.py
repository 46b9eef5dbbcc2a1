# src/api/views.py
"""
Task list views.

The caller's role and the requested view are resolved ONCE into one of
AdminView / FreelancerView / ClientView, and the query builder dispatches
on that type. Requests for a view the role may not use fall back to the
role's own default view instead of failing.
"""

import json
from dataclasses import dataclass
from typing import Optional, Union, Dict, Any, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, Query

from src.models import Task, User


@dataclass(frozen=True)
class AdminView:
    """Every task on the marketplace"""


@dataclass(frozen=True)
class FreelancerView:
    user_id: str


@dataclass(frozen=True)
class ClientView:
    user_id: str


TaskView = Union[AdminView, FreelancerView, ClientView]

ALLOWED_VIEWS = {
    "ADMIN": ("admin", "freelancer", "client"),
    "FREELANCER": ("freelancer", "client"),
    "CLIENT": ("client",),
}

DEFAULT_VIEW = {"ADMIN": "admin", "FREELANCER": "freelancer", "CLIENT": "client"}

ACTIVE_STATUSES = ("PENDING", "ASSIGNED", "IN_PROGRESS", "IN_REVIEW", "REVISION_REQUESTED")


def resolve_view(user: User, requested: Optional[str] = None) -> TaskView:
    role = (user.role or "CLIENT").upper()
    allowed = ALLOWED_VIEWS.get(role, ("client",))
    name = (requested or "").lower()
    if name not in allowed:
        name = DEFAULT_VIEW.get(role, "client")

    if name == "admin":
        return AdminView()
    if name == "freelancer":
        return FreelancerView(user_id=user.id)
    return ClientView(user_id=user.id)


def apply_view(query: Query, view: TaskView) -> Query:
    if isinstance(view, AdminView):
        return query
    if isinstance(view, FreelancerView):
        return query.filter(Task.freelancer_id == view.user_id)
    if isinstance(view, ClientView):
        return query.filter(Task.client_id == view.user_id)
    raise TypeError(f"Unsupported task view: {view!r}")


def view_name(view: TaskView) -> str:
    if isinstance(view, AdminView):
        return "admin"
    if isinstance(view, FreelancerView):
        return "freelancer"
    return "client"


def task_stats(db: Session, view: TaskView) -> Dict[str, int]:
    """Active/completed counts and credits used within the view"""
    base = apply_view(db.query(Task), view)
    active = base.filter(Task.status.in_(ACTIVE_STATUSES)).count()
    completed = base.filter(Task.status == "COMPLETED").count()
    credits = apply_view(db.query(func.coalesce(func.sum(Task.credits_used), 0)), view).scalar()
    return {
        "active_tasks": active,
        "completed_tasks": completed,
        "total_credits_used": int(credits or 0),
    }


def list_tasks_for_view(
    db: Session,
    view: TaskView,
    limit: int = 20,
    offset: int = 0,
    status: Optional[str] = None
) -> Tuple[list, int]:
    query = apply_view(db.query(Task), view)
    if status:
        query = query.filter(Task.status == status.upper())
    total = query.count()
    tasks = query.order_by(Task.created_at.desc(), Task.id).offset(offset).limit(limit).all()
    return tasks, total


def task_to_summary(task: Task) -> Dict[str, Any]:
    return {
        "task_id": task.id,
        "title": task.title,
        "status": task.status,
        "complexity": task.complexity,
        "urgency": task.urgency,
        "client_id": task.client_id,
        "freelancer_id": task.freelancer_id,
        "category_id": task.category_id,
        "credits_used": task.credits_used,
        "required_skills": json.loads(task.required_skills_json) if task.required_skills_json else [],
        "deadline": task.deadline.isoformat() if task.deadline else None,
        "assigned_at": task.assigned_at.isoformat() if task.assigned_at else None,
        "created_at": task.created_at.isoformat() if task.created_at else None,
    }
