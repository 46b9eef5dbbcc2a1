# src/assignment/coordinator.py
"""
Assignment Transaction Coordinator.

Creates a task and assigns it in ONE database transaction:

    lock client row -> check credits -> classify -> insert task ->
    rank + select -> offer + activity log -> conditional credit decrement ->
    ledger entry -> attachments -> outbox rows -> COMMIT

Any failure rolls the whole thing back, so credits are deducted iff the task
exists. Notifications are only published after the commit succeeds.
"""

import json
import uuid
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any, Callable

from sqlalchemy.orm import Session

from src.config import settings
from src.errors import MarketplaceError, InsufficientCreditsError, UserNotFoundError
from src.models import User, Task, TaskFile, TaskOffer, TaskActivityLog, CreditTransaction
from src.notifications import NotificationOutbox, EventType
from .classifier import detect_task_complexity, detect_task_urgency, to_naive_utc
from .scoring import AlgorithmConfig, ArtistScore, TaskData, rank_artists_for_task
from .selection import select_artist
from .repository import SqlFreelancerRepository
from .algorithm_config import get_active_config

logger = logging.getLogger("designdesk.assignment.coordinator")


@dataclass
class TaskRequest:
    """Validated task-creation input"""
    title: str
    description: str
    credits_required: int
    category: Optional[str] = None
    requirements: Optional[Dict[str, Any]] = None
    required_skills: List[str] = field(default_factory=list)
    estimated_hours: Optional[float] = None
    deadline: Optional[datetime] = None
    chat_history: Optional[List[Dict[str, Any]]] = None
    style_references: Optional[List[str]] = None
    attachments: List[Dict[str, Any]] = field(default_factory=list)
    moodboard_items: Optional[List[Dict[str, Any]]] = None
    brief_id: Optional[str] = None


@dataclass
class AssignmentOutcome:
    task_id: str
    status: str
    freelancer_id: Optional[str]
    assigned_to: Optional[str]
    match_score: Optional[float]
    is_fallback: bool
    credits_remaining: int
    complexity: str = ""
    urgency: str = ""


def _dump(value) -> Optional[str]:
    return json.dumps(value, default=str) if value else None


def apply_assignment(
    db: Session,
    task: Task,
    selected: ArtistScore,
    now: datetime,
    source: str = "task_creation"
) -> None:
    """Move a PENDING task to ASSIGNED and record the offer and audit entry.

    Direct assignment: the offer is written as already accepted, expiring
    the moment it is made. Caller owns the transaction.
    """
    previous_status = task.status
    task.status = "ASSIGNED"
    task.freelancer_id = selected.artist.user_id
    task.assigned_at = now
    task.updated_at = now

    db.add(TaskOffer(
        id=str(uuid.uuid4()),
        task_id=task.id,
        artist_id=selected.artist.user_id,
        match_score=selected.total_score,
        score_breakdown_json=json.dumps(selected.breakdown.to_dict()),
        escalation_level=1,
        offered_at=now,
        expires_at=now,
        response="ACCEPTED",
        responded_at=now
    ))
    db.add(TaskActivityLog(
        id=str(uuid.uuid4()),
        task_id=task.id,
        actor_id=None,
        actor_type="SYSTEM",
        action="assigned",
        previous_status=previous_status,
        new_status="ASSIGNED",
        metadata_json=json.dumps({
            "freelancer_id": selected.artist.user_id,
            "match_score": selected.total_score,
            "is_fallback": selected.is_fallback,
            "breakdown": selected.breakdown.to_dict(),
            "source": source,
        }),
        created_at=now
    ))


class TaskAssignmentCoordinator:
    """Runs task creation + assignment against one session"""

    def __init__(
        self,
        db: Session,
        outbox: Optional[NotificationOutbox] = None,
        repository=None,
        config: Optional[AlgorithmConfig] = None,
        top_n: int = settings.ASSIGNMENT_TOP_N,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.db = db
        self.outbox = outbox or NotificationOutbox()
        self.repository = repository or SqlFreelancerRepository(db)
        self.config = config
        self.top_n = top_n
        self.clock = clock or datetime.utcnow

    def create_task(self, client_id: str, request: TaskRequest) -> AssignmentOutcome:
        db = self.db
        now = self.clock()
        required = request.credits_required
        outbox_ids: List[str] = []

        try:
            # Serializes concurrent task creation for the same client
            client = (
                db.query(User)
                .filter(User.id == client_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
            if client is None:
                raise UserNotFoundError(client_id)
            if client.credits < required:
                raise InsufficientCreditsError(required, client.credits)

            category = self.repository.resolve_category(request.category)
            complexity = detect_task_complexity(
                request.estimated_hours, len(request.required_skills), request.description
            )
            urgency = detect_task_urgency(request.deadline, now)

            task = Task(
                id=str(uuid.uuid4()),
                client_id=client_id,
                category_id=category.id if category else None,
                title=request.title,
                description=request.description,
                status="PENDING",
                complexity=complexity.value,
                urgency=urgency.value,
                requirements_json=_dump(request.requirements),
                required_skills_json=_dump(request.required_skills),
                style_references_json=_dump(request.style_references),
                moodboard_items_json=_dump(request.moodboard_items),
                chat_history_json=_dump(request.chat_history),
                brief_id=request.brief_id,
                estimated_hours=request.estimated_hours,
                credits_used=required,
                max_revisions=settings.TASK_DEFAULT_MAX_REVISIONS,
                deadline=to_naive_utc(request.deadline) if request.deadline else None,
                created_at=now,
                updated_at=now
            )
            db.add(task)
            db.flush()

            task_data = TaskData(
                id=task.id,
                title=request.title,
                description=request.description,
                complexity=complexity,
                urgency=urgency,
                client_id=client_id,
                required_skills=list(request.required_skills),
                category_slug=category.slug if category else None,
                deadline=task.deadline,
            )
            config = self.config or get_active_config(db)
            ranked = rank_artists_for_task(self.repository, task_data, self.top_n, config, now)
            selected = select_artist(ranked, self.repository)

            if selected is not None:
                apply_assignment(db, task, selected, now)

            db.add(TaskActivityLog(
                id=str(uuid.uuid4()),
                task_id=task.id,
                actor_id=client_id,
                actor_type="CLIENT",
                action="created",
                previous_status="PENDING",
                new_status=task.status,
                metadata_json=json.dumps({
                    "credits_used": required,
                    "complexity": complexity.value,
                    "urgency": urgency.value,
                    "category": category.slug if category else None,
                    "candidates_ranked": len(ranked),
                }),
                created_at=now
            ))

            # Guarded decrement: the balance can never go negative
            updated = (
                db.query(User)
                .filter(User.id == client_id, User.credits >= required)
                .update({User.credits: User.credits - required}, synchronize_session=False)
            )
            if updated == 0:
                available = db.query(User.credits).filter(User.id == client_id).scalar()
                raise InsufficientCreditsError(required, available)

            db.add(CreditTransaction(
                id=str(uuid.uuid4()),
                user_id=client_id,
                amount=-required,
                type="USAGE",
                description=f"Task: {request.title}",
                related_task_id=task.id,
                created_at=now
            ))

            for attachment in request.attachments:
                db.add(TaskFile(
                    id=str(uuid.uuid4()),
                    task_id=task.id,
                    uploaded_by=client_id,
                    file_name=attachment["file_name"],
                    file_url=attachment["file_url"],
                    file_type=attachment.get("file_type") or "application/octet-stream",
                    file_size=attachment.get("file_size") or 0,
                    is_deliverable=False,
                    created_at=now
                ))

            outbox_ids.append(self.outbox.enqueue(db, EventType.NEW_TASK_CREATED, None, task.id, {
                "task_id": task.id,
                "task_title": request.title,
                "client_name": client.name,
                "credits": required,
                "complexity": complexity.value,
                "urgency": urgency.value,
                "assigned_to": selected.artist.name if selected else None,
            }))
            if selected is not None:
                outbox_ids.append(self.outbox.enqueue(db, EventType.TASK_ASSIGNED, selected.artist.user_id, task.id, {
                    "task_id": task.id,
                    "task_title": request.title,
                    "match_score": selected.total_score,
                }))

            db.commit()

        except MarketplaceError as e:
            db.rollback()
            logger.warning(f"Task creation rejected | client={client_id} | code={e.error_code} | {e.message}")
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Task creation failed - rolled back | client={client_id} | error={e}")
            raise

        self.outbox.publish(outbox_ids)

        outcome = AssignmentOutcome(
            task_id=task.id,
            status=task.status,
            freelancer_id=selected.artist.user_id if selected else None,
            assigned_to=selected.artist.name if selected else None,
            match_score=selected.total_score if selected else None,
            is_fallback=selected.is_fallback if selected else False,
            credits_remaining=client.credits,
            complexity=complexity.value,
            urgency=urgency.value,
        )
        logger.info(
            f"Task created | task_id={outcome.task_id} | status={outcome.status} | "
            f"freelancer={outcome.freelancer_id} | score={outcome.match_score} | "
            f"fallback={outcome.is_fallback} | credits_remaining={outcome.credits_remaining}"
        )
        return outcome
