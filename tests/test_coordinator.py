# tests/test_coordinator.py
"""
Test suite for the task creation + assignment transaction

Tests:
1. Credit accounting and the usage ledger
2. Rejections leave no trace (insufficient credits, unknown client)
3. All-or-nothing rollback on mid-transaction failure
4. Fallback assignment and the no-freelancer PENDING path
5. Outbox rows and post-commit publishing
"""

import sys
import os
import json
from datetime import timedelta

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from src.assignment.coordinator import TaskAssignmentCoordinator, TaskRequest
from src.assignment.repository import SqlFreelancerRepository
from src.errors import InsufficientCreditsError, UserNotFoundError
from src.models import (
    User, Task, TaskFile, TaskOffer, TaskActivityLog, CreditTransaction,
    NotificationOutbox as OutboxRow
)
from src.notifications import EventType
from conftest import FIXED_NOW


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def coordinator(db_session, outbox):
    return TaskAssignmentCoordinator(db_session, outbox=outbox, clock=lambda: FIXED_NOW)


@pytest.fixture
def client(make_user):
    return make_user(user_id="client-1", name="Dana Client", credits=10)


def request(**overrides):
    fields = dict(
        title="Logo for a coffee shop",
        description="Warm, hand-drawn logo for a neighbourhood coffee shop",
        credits_required=3,
        required_skills=["logo"],
        estimated_hours=6,
    )
    fields.update(overrides)
    return TaskRequest(**fields)


def task_count(db):
    return db.query(Task).count()


def credits_of(db, user_id):
    db.expire_all()
    return db.query(User).filter(User.id == user_id).one().credits


# =============================================================================
# Credits
# =============================================================================

class TestCredits:

    def test_credits_deducted_and_ledger_written(self, db_session, coordinator, client, make_freelancer):
        make_freelancer(user_id="f-1", skills=["logo"])

        outcome = coordinator.create_task(client.id, request(credits_required=4))

        assert outcome.credits_remaining == 6
        assert credits_of(db_session, client.id) == 6
        ledger = db_session.query(CreditTransaction).all()
        assert len(ledger) == 1
        assert ledger[0].amount == -4
        assert ledger[0].type == "USAGE"
        assert ledger[0].related_task_id == outcome.task_id
        assert ledger[0].description == "Task: Logo for a coffee shop"

    def test_insufficient_credits_rejected_without_writes(self, db_session, coordinator, make_user, redis_mock):
        poor = make_user(user_id="client-2", credits=2)

        with pytest.raises(InsufficientCreditsError) as exc:
            coordinator.create_task(poor.id, request(credits_required=3))

        assert exc.value.context == {"required": 3, "available": 2}
        assert task_count(db_session) == 0
        assert db_session.query(CreditTransaction).count() == 0
        assert db_session.query(OutboxRow).count() == 0
        assert credits_of(db_session, poor.id) == 2
        redis_mock.lpush.assert_not_called()

    def test_unknown_client(self, db_session, coordinator):
        with pytest.raises(UserNotFoundError):
            coordinator.create_task("ghost", request())
        assert task_count(db_session) == 0

    def test_second_task_rejected_once_balance_spent(self, db_session, coordinator, client, make_freelancer):
        make_freelancer(user_id="f-1")

        coordinator.create_task(client.id, request(credits_required=6))
        with pytest.raises(InsufficientCreditsError):
            coordinator.create_task(client.id, request(credits_required=6))

        assert task_count(db_session) == 1
        assert credits_of(db_session, client.id) == 4
        assert db_session.query(CreditTransaction).count() == 1

    def test_credit_check_reads_balance_under_lock(self, db_session, coordinator, client, make_freelancer):
        make_freelancer(user_id="f-1")
        # Balance spent elsewhere while this session still holds the loaded client
        assert db_session.query(User).filter(User.id == client.id).one().credits == 10
        db_session.query(User).filter(User.id == client.id).update(
            {User.credits: 1}, synchronize_session=False
        )

        with pytest.raises(InsufficientCreditsError) as exc:
            coordinator.create_task(client.id, request(credits_required=3))

        assert exc.value.context == {"required": 3, "available": 1}
        assert task_count(db_session) == 0

    def test_guarded_decrement_rejects_balance_spent_mid_transaction(self, db_session, outbox, client, make_freelancer):
        make_freelancer(user_id="f-1")

        class DrainingRepository(SqlFreelancerRepository):
            """Spends the client's balance behind the coordinator's back"""

            def list_available_artists(self):
                self.db.query(User).filter(User.id == "client-1").update(
                    {User.credits: 1}, synchronize_session=False
                )
                return super().list_available_artists()

        coordinator = TaskAssignmentCoordinator(
            db_session, outbox=outbox, repository=DrainingRepository(db_session), clock=lambda: FIXED_NOW
        )
        with pytest.raises(InsufficientCreditsError) as exc:
            coordinator.create_task(client.id, request(credits_required=3))

        assert exc.value.context == {"required": 3, "available": 1}
        assert task_count(db_session) == 0
        assert credits_of(db_session, client.id) == 10


# =============================================================================
# Atomicity
# =============================================================================

class TestAtomicity:

    def test_failure_after_decrement_rolls_everything_back(self, db_session, coordinator, outbox, client,
                                                           make_freelancer, redis_mock, monkeypatch):
        make_freelancer(user_id="f-1")

        def broken_enqueue(*args, **kwargs):
            raise RuntimeError("outbox insert failed")

        monkeypatch.setattr(outbox, "enqueue", broken_enqueue)

        with pytest.raises(RuntimeError):
            coordinator.create_task(client.id, request())

        assert task_count(db_session) == 0
        assert db_session.query(TaskOffer).count() == 0
        assert db_session.query(TaskActivityLog).count() == 0
        assert db_session.query(CreditTransaction).count() == 0
        assert credits_of(db_session, client.id) == 10
        redis_mock.lpush.assert_not_called()

    def test_ranking_failure_rolls_back(self, db_session, outbox, client):
        class BrokenRepository(SqlFreelancerRepository):
            def list_available_artists(self):
                raise RuntimeError("database unavailable")

        coordinator = TaskAssignmentCoordinator(
            db_session, outbox=outbox, repository=BrokenRepository(db_session), clock=lambda: FIXED_NOW
        )
        with pytest.raises(RuntimeError):
            coordinator.create_task(client.id, request())

        assert task_count(db_session) == 0
        assert credits_of(db_session, client.id) == 10


# =============================================================================
# Assignment
# =============================================================================

class TestAssignment:

    def test_best_match_assigned(self, db_session, coordinator, client, make_freelancer):
        make_freelancer(user_id="f-1", name="Photo Person", skills=["photography"])
        make_freelancer(user_id="f-2", name="Logo Person", skills=["logo", "branding"])

        outcome = coordinator.create_task(client.id, request())

        assert outcome.status == "ASSIGNED"
        assert outcome.freelancer_id == "f-2"
        assert outcome.assigned_to == "Logo Person"
        assert outcome.is_fallback is False

        task = db_session.query(Task).filter(Task.id == outcome.task_id).one()
        assert task.freelancer_id == "f-2"
        assert task.assigned_at == FIXED_NOW
        assert json.loads(task.required_skills_json) == ["logo"]

        offer = db_session.query(TaskOffer).one()
        assert offer.artist_id == "f-2"
        assert offer.response == "ACCEPTED"
        assert offer.match_score == outcome.match_score
        assert set(json.loads(offer.score_breakdown_json)) == {
            "skill_score", "timezone_score", "experience_score", "workload_score", "performance_score"
        }

    def test_fallback_when_everyone_is_excluded(self, db_session, coordinator, client, make_freelancer):
        make_freelancer(user_id="f-2", accepts_urgent_tasks=False)
        make_freelancer(user_id="f-1", accepts_urgent_tasks=False)

        outcome = coordinator.create_task(client.id, request(deadline=FIXED_NOW + timedelta(hours=12)))

        assert outcome.urgency == "CRITICAL"
        assert outcome.status == "ASSIGNED"
        assert outcome.freelancer_id == "f-1"
        assert outcome.match_score == 0
        assert outcome.is_fallback is True

        log = (
            db_session.query(TaskActivityLog)
            .filter(TaskActivityLog.action == "assigned")
            .one()
        )
        metadata = json.loads(log.metadata_json)
        assert metadata["is_fallback"] is True
        assert metadata["match_score"] == 0
        assert log.actor_type == "SYSTEM"

    def test_stays_pending_without_approved_freelancers(self, db_session, coordinator, client, make_freelancer):
        make_freelancer(user_id="f-1", status="PENDING")

        outcome = coordinator.create_task(client.id, request())

        assert outcome.status == "PENDING"
        assert outcome.freelancer_id is None
        assert outcome.match_score is None
        assert credits_of(db_session, client.id) == 7
        assert db_session.query(TaskOffer).count() == 0
        created = db_session.query(TaskActivityLog).one()
        assert created.action == "created"
        assert created.new_status == "PENDING"

    def test_created_log_records_final_status(self, db_session, coordinator, client, make_freelancer):
        make_freelancer(user_id="f-1")
        coordinator.create_task(client.id, request())

        created = db_session.query(TaskActivityLog).filter(TaskActivityLog.action == "created").one()
        assert created.actor_type == "CLIENT"
        assert created.actor_id == client.id
        assert created.previous_status == "PENDING"
        assert created.new_status == "ASSIGNED"

    def test_category_slug_is_normalized(self, db_session, coordinator, client, make_freelancer, make_category):
        category = make_category(slug="social-media")
        make_freelancer(user_id="f-1")

        outcome = coordinator.create_task(client.id, request(category="Social_Media"))

        task = db_session.query(Task).filter(Task.id == outcome.task_id).one()
        assert task.category_id == category.id

    def test_unknown_category_is_tolerated(self, db_session, coordinator, client, make_freelancer):
        make_freelancer(user_id="f-1")
        outcome = coordinator.create_task(client.id, request(category="calligraphy"))
        task = db_session.query(Task).filter(Task.id == outcome.task_id).one()
        assert task.category_id is None

    def test_attachments_become_task_files(self, db_session, coordinator, client, make_freelancer):
        make_freelancer(user_id="f-1")
        attachments = [
            {"file_name": "brief.pdf", "file_url": "https://files.example.com/brief.pdf",
             "file_type": "application/pdf", "file_size": 2048},
            {"file_name": "sketch", "file_url": "https://files.example.com/sketch"},
        ]

        outcome = coordinator.create_task(client.id, request(attachments=attachments))

        files = db_session.query(TaskFile).filter(TaskFile.task_id == outcome.task_id).order_by(TaskFile.file_name).all()
        assert [f.file_name for f in files] == ["brief.pdf", "sketch"]
        assert files[1].file_type == "application/octet-stream"
        assert files[1].file_size == 0
        assert all(f.uploaded_by == client.id and not f.is_deliverable for f in files)


# =============================================================================
# Notifications
# =============================================================================

class TestOutbox:

    def test_outbox_rows_written_and_published_after_commit(self, db_session, coordinator, client,
                                                           make_freelancer, redis_mock):
        make_freelancer(user_id="f-1", name="Artist One")

        outcome = coordinator.create_task(client.id, request())

        rows = {r.event_type: r for r in db_session.query(OutboxRow).all()}
        assert set(rows) == {EventType.NEW_TASK_CREATED, EventType.TASK_ASSIGNED}
        assert rows[EventType.NEW_TASK_CREATED].recipient_id is None
        assert rows[EventType.TASK_ASSIGNED].recipient_id == "f-1"
        assert all(r.status == "PENDING" and r.task_id == outcome.task_id for r in rows.values())

        admin_payload = json.loads(rows[EventType.NEW_TASK_CREATED].payload_json)
        assert admin_payload["client_name"] == "Dana Client"
        assert admin_payload["assigned_to"] == "Artist One"

        redis_mock.lpush.assert_called_once()
        pushed = set(redis_mock.lpush.call_args[0][1:])
        assert pushed == {r.id for r in rows.values()}

    def test_only_admin_notice_when_unassigned(self, db_session, coordinator, client):
        coordinator.create_task(client.id, request())
        rows = db_session.query(OutboxRow).all()
        assert [r.event_type for r in rows] == [EventType.NEW_TASK_CREATED]

    def test_publish_failure_does_not_fail_request(self, db_session, coordinator, client,
                                                  make_freelancer, redis_mock):
        make_freelancer(user_id="f-1")
        redis_mock.lpush.side_effect = ConnectionError("redis down")

        outcome = coordinator.create_task(client.id, request())

        assert outcome.status == "ASSIGNED"
        assert task_count(db_session) == 1
        assert db_session.query(OutboxRow).filter(OutboxRow.status == "PENDING").count() == 2
