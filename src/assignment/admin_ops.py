# src/assignment/admin_ops.py
"""
Admin-side assignment operations:

  - reassign_task: move a task to a named approved freelancer
  - list_reassignment_candidates: approved freelancers, best match first
  - assign_pending_tasks: sweep PENDING tasks that never got an owner
"""

import json
import uuid
import logging
from datetime import datetime
from typing import Optional, Dict, Any, List

from sqlalchemy.orm import Session

from src.config import settings
from src.errors import NotFoundError, ReassignmentError
from src.models import Task, TaskActivityLog, TaskCategory
from src.notifications import NotificationOutbox, EventType
from .classifier import Complexity, Urgency, detect_task_complexity, detect_task_urgency
from .scoring import AlgorithmConfig, TaskData, score_candidates, ranking_key, rank_artists_for_task
from .selection import select_artist
from .repository import SqlFreelancerRepository
from .algorithm_config import get_active_config
from .coordinator import apply_assignment

logger = logging.getLogger("designdesk.assignment.admin")

REASSIGNABLE_STATUSES = ("PENDING", "ASSIGNED", "IN_PROGRESS", "REVISION_REQUESTED")


def task_to_task_data(db: Session, task: Task, now: Optional[datetime] = None) -> TaskData:
    """Rebuild the scoring descriptor for a stored task"""
    skills = json.loads(task.required_skills_json) if task.required_skills_json else []
    try:
        complexity = Complexity(task.complexity)
    except ValueError:
        complexity = detect_task_complexity(task.estimated_hours, len(skills), task.description)
    try:
        urgency = Urgency(task.urgency)
    except ValueError:
        urgency = detect_task_urgency(task.deadline, now)

    slug = None
    if task.category_id:
        category = db.query(TaskCategory).filter(TaskCategory.id == task.category_id).first()
        slug = category.slug if category else None

    return TaskData(
        id=task.id,
        title=task.title,
        description=task.description or "",
        complexity=complexity,
        urgency=urgency,
        client_id=task.client_id,
        required_skills=skills,
        category_slug=slug,
        deadline=task.deadline,
    )


# =============================================================================
# Reassignment
# =============================================================================

def reassign_task(
    db: Session,
    task_id: str,
    freelancer_id: str,
    actor_id: Optional[str] = None,
    outbox: Optional[NotificationOutbox] = None,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    outbox = outbox or NotificationOutbox()
    now = now or datetime.utcnow()
    outbox_ids: List[str] = []

    try:
        task = db.query(Task).filter(Task.id == task_id).with_for_update().first()
        if task is None:
            raise NotFoundError("Task", task_id)
        if task.status not in REASSIGNABLE_STATUSES:
            raise ReassignmentError(
                f"Cannot reassign task with status: {task.status}",
                context={"status": task.status}
            )

        target = SqlFreelancerRepository(db).get_approved_freelancer(freelancer_id)
        if target is None:
            raise ReassignmentError(
                "Freelancer not found or not approved",
                context={"freelancer_id": freelancer_id}
            )
        if task.freelancer_id == freelancer_id:
            raise ReassignmentError(
                "Task is already assigned to this freelancer",
                context={"freelancer_id": freelancer_id}
            )

        previous_freelancer_id = task.freelancer_id
        previous_status = task.status
        task.freelancer_id = freelancer_id
        task.status = "ASSIGNED"
        task.assigned_at = now
        task.updated_at = now

        db.add(TaskActivityLog(
            id=str(uuid.uuid4()),
            task_id=task.id,
            actor_id=actor_id,
            actor_type="ADMIN",
            action="reassigned",
            previous_status=previous_status,
            new_status="ASSIGNED",
            metadata_json=json.dumps({
                "previous_freelancer_id": previous_freelancer_id,
                "new_freelancer_id": freelancer_id,
            }),
            created_at=now
        ))

        payload = {"task_id": task.id, "task_title": task.title}
        outbox_ids.append(outbox.enqueue(db, EventType.TASK_REASSIGNED, freelancer_id, task.id, payload))
        if previous_freelancer_id:
            outbox_ids.append(outbox.enqueue(db, EventType.TASK_UNASSIGNED, previous_freelancer_id, task.id, payload))

        db.commit()
    except Exception:
        db.rollback()
        raise

    outbox.publish(outbox_ids)
    logger.info(
        f"Task reassigned | task_id={task_id} | from={previous_freelancer_id} | "
        f"to={freelancer_id} | by={actor_id}"
    )
    return {
        "task_id": task_id,
        "status": "ASSIGNED",
        "freelancer_id": freelancer_id,
        "previous_freelancer_id": previous_freelancer_id,
        "assigned_to": target.name,
    }


def list_reassignment_candidates(
    db: Session,
    task_id: str,
    config: Optional[AlgorithmConfig] = None,
    now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """Every approved freelancer, scored against the task.

    Unlike ranking, excluded and unavailable freelancers are listed too so
    an admin can override the engine; they sort after eligible ones.
    """
    task = db.query(Task).filter(Task.id == task_id).first()
    if task is None:
        raise NotFoundError("Task", task_id)

    now = now or datetime.utcnow()
    config = config or get_active_config(db)
    repository = SqlFreelancerRepository(db)

    candidates = repository.list_approved_artists()
    task_data = task_to_task_data(db, task, now)
    favorites = repository.get_favorite_artist_ids(task.client_id)
    scores = score_candidates(candidates, task_data, now, config, favorites)
    scores.sort(key=lambda s: (s.excluded, ranking_key(s)))

    return [
        {
            "user_id": s.artist.user_id,
            "name": s.artist.name,
            "email": s.artist.email,
            "completed_tasks": s.artist.completed_tasks,
            "rating": s.artist.rating,
            "active_tasks": s.artist.active_tasks,
            "is_current": s.artist.user_id == task.freelancer_id,
            "match_score": s.total_score,
            "excluded": s.excluded,
            "exclusion_reason": s.exclusion_reason,
            "breakdown": s.breakdown.to_dict(),
        }
        for s in scores
    ]


# =============================================================================
# Pending Sweep
# =============================================================================

def assign_pending_tasks(
    db: Session,
    outbox: Optional[NotificationOutbox] = None,
    config: Optional[AlgorithmConfig] = None,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
    dry_run: bool = False
) -> Dict[str, Any]:
    """Run rank + select for each PENDING task without a freelancer.

    Each task is handled in its own transaction with its row locked, and its
    status re-checked under the lock so a concurrent assignment wins.
    """
    outbox = outbox or NotificationOutbox()
    now = now or datetime.utcnow()
    config = config or get_active_config(db)

    query = (
        db.query(Task.id)
        .filter(Task.status == "PENDING", Task.freelancer_id.is_(None))
        .order_by(Task.created_at)
    )
    if limit:
        query = query.limit(limit)
    task_ids = [task_id for (task_id,) in query.all()]
    db.rollback()

    stats = {"examined": len(task_ids), "assigned": 0, "fallback": 0, "unassigned": 0,
             "skipped": 0, "errors": 0, "planned": []}

    for task_id in task_ids:
        try:
            task = db.query(Task).filter(Task.id == task_id).with_for_update().first()
            if task is None or task.status != "PENDING" or task.freelancer_id:
                db.rollback()
                stats["skipped"] += 1
                continue

            repository = SqlFreelancerRepository(db)
            ranked = rank_artists_for_task(
                repository, task_to_task_data(db, task, now), settings.ASSIGNMENT_TOP_N, config, now
            )
            selected = select_artist(ranked, repository)
            if selected is None:
                db.rollback()
                stats["unassigned"] += 1
                continue

            if dry_run:
                db.rollback()
                stats["planned"].append({
                    "task_id": task_id,
                    "freelancer_id": selected.artist.user_id,
                    "match_score": selected.total_score,
                    "is_fallback": selected.is_fallback,
                })
                continue

            apply_assignment(db, task, selected, now, source="pending_sweep")
            outbox_id = outbox.enqueue(db, EventType.TASK_ASSIGNED, selected.artist.user_id, task.id, {
                "task_id": task.id,
                "task_title": task.title,
                "match_score": selected.total_score,
            })
            db.commit()
            outbox.publish([outbox_id])

            stats["assigned"] += 1
            if selected.is_fallback:
                stats["fallback"] += 1
            logger.info(
                f"Pending task assigned | task_id={task_id} | freelancer={selected.artist.user_id} | "
                f"score={selected.total_score} | fallback={selected.is_fallback}"
            )

        except Exception as e:
            db.rollback()
            stats["errors"] += 1
            logger.error(f"Pending sweep failed for task {task_id}: {e}")

    logger.info(
        f"Pending sweep complete | examined={stats['examined']} | assigned={stats['assigned']} | "
        f"fallback={stats['fallback']} | unassigned={stats['unassigned']} | errors={stats['errors']}"
    )
    return stats
