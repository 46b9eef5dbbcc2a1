# src/assignment/repository.py
"""
Freelancer data access for the assignment engine.

The scoring engine only talks to a FreelancerRepository, so tests can drive
it with an in-memory subclass while production uses the SQLAlchemy one.
"""

import json
import logging
from typing import Optional, List, Set

from sqlalchemy import func
from sqlalchemy.orm import Session

from src.models import User, FreelancerProfile, ClientArtistAffinity, Task, TaskCategory
from .scoring import ArtistData

logger = logging.getLogger("designdesk.assignment.repository")

# Statuses that no longer count against an artist's workload
CLOSED_TASK_STATUSES = ("COMPLETED", "CANCELLED")


def normalize_category_slug(category: Optional[str]) -> Optional[str]:
    """'Social_Media' -> 'social-media'; blank -> None"""
    if not category or not category.strip():
        return None
    return category.strip().lower().replace("_", "-")


def _json_list(raw: Optional[str]) -> tuple:
    if not raw:
        return ()
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed tag list: {raw[:60]!r}")
        return ()
    if not isinstance(value, list):
        return ()
    return tuple(str(v) for v in value)


class FreelancerRepository:
    """Interface the ranking and selection steps read through"""

    def list_available_artists(self) -> List[ArtistData]:
        raise NotImplementedError

    def get_favorite_artist_ids(self, client_id: str) -> Set[str]:
        raise NotImplementedError

    def find_fallback_artist(self) -> Optional[ArtistData]:
        raise NotImplementedError


class SqlFreelancerRepository(FreelancerRepository):
    """Reads artist snapshots from the caller's session (inside its transaction)"""

    def __init__(self, db: Session):
        self.db = db

    def _active_task_counts(self, user_ids: List[str]) -> dict:
        if not user_ids:
            return {}
        rows = (
            self.db.query(Task.freelancer_id, func.count(Task.id))
            .filter(
                Task.freelancer_id.in_(user_ids),
                Task.status.notin_(CLOSED_TASK_STATUSES),
            )
            .group_by(Task.freelancer_id)
            .all()
        )
        return {user_id: count for user_id, count in rows}

    @staticmethod
    def _to_artist(user: User, profile: FreelancerProfile, active_tasks: int = 0) -> ArtistData:
        return ArtistData(
            user_id=user.id,
            name=user.name,
            email=user.email,
            timezone=profile.timezone,
            experience_level=profile.experience_level or "JUNIOR",
            rating=profile.rating or 0.0,
            completed_tasks=profile.completed_tasks or 0,
            acceptance_rate=profile.acceptance_rate,
            on_time_rate=profile.on_time_rate,
            max_concurrent_tasks=profile.max_concurrent_tasks or 5,
            working_hours_start=profile.working_hours_start or "09:00",
            working_hours_end=profile.working_hours_end or "18:00",
            accepts_urgent_tasks=bool(profile.accepts_urgent_tasks),
            vacation_mode=bool(profile.vacation_mode),
            skills=_json_list(profile.skills_json),
            specializations=_json_list(profile.specializations_json),
            preferred_categories=_json_list(profile.preferred_categories_json),
            active_tasks=active_tasks,
        )

    def list_available_artists(self) -> List[ArtistData]:
        """APPROVED, available freelancers with their open task counts"""
        rows = (
            self.db.query(User, FreelancerProfile)
            .join(FreelancerProfile, FreelancerProfile.user_id == User.id)
            .filter(
                FreelancerProfile.status == "APPROVED",
                FreelancerProfile.availability.is_(True),
            )
            .order_by(User.id)
            .all()
        )
        counts = self._active_task_counts([user.id for user, _ in rows])
        return [self._to_artist(user, profile, counts.get(user.id, 0)) for user, profile in rows]

    def list_approved_artists(self) -> List[ArtistData]:
        """Every APPROVED freelancer, available or not"""
        rows = (
            self.db.query(User, FreelancerProfile)
            .join(FreelancerProfile, FreelancerProfile.user_id == User.id)
            .filter(FreelancerProfile.status == "APPROVED")
            .order_by(User.id)
            .all()
        )
        counts = self._active_task_counts([user.id for user, _ in rows])
        return [self._to_artist(user, profile, counts.get(user.id, 0)) for user, profile in rows]

    def get_favorite_artist_ids(self, client_id: str) -> Set[str]:
        rows = (
            self.db.query(ClientArtistAffinity.artist_id)
            .filter(
                ClientArtistAffinity.client_id == client_id,
                ClientArtistAffinity.is_favorite.is_(True),
            )
            .all()
        )
        return {artist_id for (artist_id,) in rows}

    def find_fallback_artist(self) -> Optional[ArtistData]:
        """First APPROVED freelancer by user id, regardless of availability"""
        row = (
            self.db.query(User, FreelancerProfile)
            .join(FreelancerProfile, FreelancerProfile.user_id == User.id)
            .filter(FreelancerProfile.status == "APPROVED")
            .order_by(User.id)
            .first()
        )
        if row is None:
            return None
        user, profile = row
        counts = self._active_task_counts([user.id])
        return self._to_artist(user, profile, counts.get(user.id, 0))

    def resolve_category(self, category: Optional[str]) -> Optional[TaskCategory]:
        slug = normalize_category_slug(category)
        if slug is None:
            return None
        found = (
            self.db.query(TaskCategory)
            .filter(TaskCategory.slug == slug, TaskCategory.is_active.is_(True))
            .first()
        )
        if found is None:
            logger.info(f"Unknown task category '{category}' - task created uncategorized")
        return found

    def get_approved_freelancer(self, user_id: str) -> Optional[ArtistData]:
        row = (
            self.db.query(User, FreelancerProfile)
            .join(FreelancerProfile, FreelancerProfile.user_id == User.id)
            .filter(User.id == user_id, FreelancerProfile.status == "APPROVED")
            .first()
        )
        if row is None:
            return None
        user, profile = row
        return self._to_artist(user, profile)
