# src/assignment/metrics.py
import logging
from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from src.errors import NotFoundError
from src.models import FreelancerProfile, Task, TaskOffer

logger = logging.getLogger("designdesk.assignment.metrics")


def experience_level_for(completed: int) -> str:
    if completed > 150:
        return "EXPERT"
    if completed > 50:
        return "SENIOR"
    if completed > 10:
        return "MID"
    return "JUNIOR"


def update_artist_metrics(db: Session, artist_id: str) -> Optional[Dict[str, Any]]:
    """Recompute an artist's performance counters from offers and completed tasks.

    Rates are stored as fractions in [0, 1]. An artist with no answered
    offers is left untouched and None is returned.
    """
    profile = db.query(FreelancerProfile).filter(FreelancerProfile.user_id == artist_id).first()
    if profile is None:
        raise NotFoundError("Freelancer", artist_id)

    offers = (
        db.query(TaskOffer)
        .filter(TaskOffer.artist_id == artist_id, TaskOffer.response != "PENDING")
        .all()
    )
    if not offers:
        logger.debug(f"No answered offers for {artist_id} - metrics unchanged")
        return None

    accepted = sum(1 for o in offers if o.response == "ACCEPTED")
    acceptance_rate = accepted / len(offers)

    response_minutes = [
        (o.responded_at - o.offered_at).total_seconds() / 60
        for o in offers if o.responded_at and o.offered_at
    ]
    avg_response = round(sum(response_minutes) / len(response_minutes)) if response_minutes else None

    completed = (
        db.query(Task)
        .filter(Task.freelancer_id == artist_id, Task.status == "COMPLETED")
        .all()
    )
    with_deadline = [t for t in completed if t.deadline and t.completed_at]
    on_time = sum(1 for t in with_deadline if t.completed_at <= t.deadline)
    on_time_rate = on_time / len(with_deadline) if with_deadline else None

    try:
        profile.acceptance_rate = round(acceptance_rate, 4)
        profile.avg_response_time_minutes = avg_response
        profile.on_time_rate = round(on_time_rate, 4) if on_time_rate is not None else None
        profile.completed_tasks = len(completed)
        profile.experience_level = experience_level_for(len(completed))
        profile.updated_at = datetime.utcnow()
        db.commit()
    except Exception:
        db.rollback()
        raise

    metrics = {
        "user_id": artist_id,
        "acceptance_rate": profile.acceptance_rate,
        "avg_response_time_minutes": profile.avg_response_time_minutes,
        "on_time_rate": profile.on_time_rate,
        "completed_tasks": profile.completed_tasks,
        "experience_level": profile.experience_level,
    }
    logger.info(
        f"Artist metrics updated | user_id={artist_id} | acceptance={metrics['acceptance_rate']} | "
        f"on_time={metrics['on_time_rate']} | completed={metrics['completed_tasks']} | "
        f"level={metrics['experience_level']}"
    )
    return metrics
