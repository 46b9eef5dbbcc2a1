# tests/test_views.py
import sys
import os
from datetime import datetime, timedelta

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from src.api.views import (
    AdminView,
    ClientView,
    FreelancerView,
    apply_view,
    list_tasks_for_view,
    resolve_view,
    task_stats,
)
from src.models import Task, User


def user(role, user_id="u-1"):
    return User(id=user_id, name="U", email=f"{user_id}@example.com", role=role)


class TestResolveView:

    @pytest.mark.parametrize("role,requested,expected", [
        ("ADMIN", None, AdminView()),
        ("ADMIN", "freelancer", FreelancerView("u-1")),
        ("ADMIN", "CLIENT", ClientView("u-1")),
        ("FREELANCER", None, FreelancerView("u-1")),
        ("FREELANCER", "client", ClientView("u-1")),
        ("FREELANCER", "admin", FreelancerView("u-1")),
        ("CLIENT", "admin", ClientView("u-1")),
        ("CLIENT", "freelancer", ClientView("u-1")),
        ("CLIENT", "bogus", ClientView("u-1")),
    ])
    def test_role_and_requested_view(self, role, requested, expected):
        assert resolve_view(user(role), requested) == expected

    def test_unknown_role_is_treated_as_client(self):
        assert resolve_view(user("AUDITOR"), "admin") == ClientView("u-1")


def test_apply_view_rejects_unknown_types(db_session):
    with pytest.raises(TypeError):
        apply_view(db_session.query(Task), "admin")


class TestTaskQueries:

    @pytest.fixture
    def seeded(self, db_session, make_user, make_freelancer):
        make_user(user_id="c-1")
        make_user(user_id="c-2")
        make_freelancer(user_id="f-1")
        base = datetime(2026, 3, 1)
        rows = [
            ("t-1", "c-1", "f-1", "ASSIGNED", 3),
            ("t-2", "c-1", "f-1", "COMPLETED", 5),
            ("t-3", "c-1", None, "PENDING", 1),
            ("t-4", "c-2", "f-1", "CANCELLED", 2),
        ]
        for i, (task_id, client_id, freelancer_id, status, credits) in enumerate(rows):
            db_session.add(Task(
                id=task_id, client_id=client_id, freelancer_id=freelancer_id, title=task_id,
                description="d", status=status, credits_used=credits,
                created_at=base + timedelta(hours=i), updated_at=base
            ))
        db_session.commit()

    def test_client_stats(self, db_session, seeded):
        assert task_stats(db_session, ClientView("c-1")) == {
            "active_tasks": 2, "completed_tasks": 1, "total_credits_used": 9
        }

    def test_freelancer_stats(self, db_session, seeded):
        assert task_stats(db_session, FreelancerView("f-1")) == {
            "active_tasks": 1, "completed_tasks": 1, "total_credits_used": 10
        }

    def test_empty_view_stats(self, db_session, seeded):
        assert task_stats(db_session, ClientView("nobody")) == {
            "active_tasks": 0, "completed_tasks": 0, "total_credits_used": 0
        }

    def test_newest_first(self, db_session, seeded):
        tasks, total = list_tasks_for_view(db_session, AdminView())
        assert total == 4
        assert [t.id for t in tasks] == ["t-4", "t-3", "t-2", "t-1"]

    def test_status_filter(self, db_session, seeded):
        tasks, total = list_tasks_for_view(db_session, ClientView("c-1"), status="completed")
        assert total == 1
        assert tasks[0].id == "t-2"
