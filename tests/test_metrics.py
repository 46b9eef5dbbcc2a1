# tests/test_metrics.py
import sys
import os
import uuid
from datetime import timedelta

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from src.assignment.metrics import update_artist_metrics, experience_level_for
from src.errors import NotFoundError
from src.models import Task, TaskOffer, FreelancerProfile
from conftest import FIXED_NOW


def add_offer(db, artist_id, task_id, response, minutes=None):
    db.add(TaskOffer(
        id=str(uuid.uuid4()),
        task_id=task_id,
        artist_id=artist_id,
        match_score=50.0,
        offered_at=FIXED_NOW,
        expires_at=FIXED_NOW + timedelta(hours=2),
        response=response,
        responded_at=FIXED_NOW + timedelta(minutes=minutes) if minutes is not None else None
    ))


def add_task(db, task_id, client_id, artist_id, status="ASSIGNED", deadline=None, completed_at=None):
    db.add(Task(
        id=task_id,
        client_id=client_id,
        freelancer_id=artist_id,
        title=task_id,
        description="d",
        status=status,
        credits_used=1,
        deadline=deadline,
        completed_at=completed_at,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW
    ))


@pytest.mark.parametrize("completed,level", [
    (0, "JUNIOR"), (10, "JUNIOR"), (11, "MID"), (51, "SENIOR"), (151, "EXPERT"),
])
def test_experience_level_thresholds(completed, level):
    assert experience_level_for(completed) == level


def test_unknown_freelancer(db_session):
    with pytest.raises(NotFoundError):
        update_artist_metrics(db_session, "ghost")


def test_no_answered_offers_leaves_profile_alone(db_session, make_user, make_freelancer):
    client = make_user(user_id="c-1")
    make_freelancer(user_id="f-1", acceptance_rate=0.42)
    add_task(db_session, "t-1", client.id, "f-1")
    add_offer(db_session, "f-1", "t-1", "PENDING")
    db_session.commit()

    assert update_artist_metrics(db_session, "f-1") is None
    profile = db_session.query(FreelancerProfile).filter(FreelancerProfile.user_id == "f-1").one()
    assert profile.acceptance_rate == 0.42


def test_recomputes_rates_as_fractions(db_session, make_user, make_freelancer):
    client = make_user(user_id="c-1")
    make_freelancer(user_id="f-1", completed_tasks=99, experience_level="SENIOR")

    add_task(db_session, "t-on-time", client.id, "f-1", status="COMPLETED",
             deadline=FIXED_NOW + timedelta(days=2), completed_at=FIXED_NOW + timedelta(days=1))
    add_task(db_session, "t-late", client.id, "f-1", status="COMPLETED",
             deadline=FIXED_NOW + timedelta(days=1), completed_at=FIXED_NOW + timedelta(days=3))
    add_task(db_session, "t-no-deadline", client.id, "f-1", status="COMPLETED", completed_at=FIXED_NOW)
    add_task(db_session, "t-open", client.id, "f-1")

    add_offer(db_session, "f-1", "t-on-time", "ACCEPTED", minutes=10)
    add_offer(db_session, "f-1", "t-late", "ACCEPTED", minutes=20)
    add_offer(db_session, "f-1", "t-open", "DECLINED", minutes=30)
    add_offer(db_session, "f-1", "t-no-deadline", "PENDING")
    db_session.commit()

    metrics = update_artist_metrics(db_session, "f-1")

    assert metrics["acceptance_rate"] == 0.6667
    assert metrics["avg_response_time_minutes"] == 20
    assert metrics["on_time_rate"] == 0.5
    assert metrics["completed_tasks"] == 3
    assert metrics["experience_level"] == "JUNIOR"

    db_session.expire_all()
    profile = db_session.query(FreelancerProfile).filter(FreelancerProfile.user_id == "f-1").one()
    assert 0 <= profile.acceptance_rate <= 1
    assert profile.completed_tasks == 3
