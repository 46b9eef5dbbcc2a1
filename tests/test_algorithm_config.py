# tests/test_algorithm_config.py
"""
Tests for versioned algorithm configuration: drafts, validation, publishing,
and the scoring engine picking up the active version.
"""

import sys
import os
import uuid
from datetime import datetime

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from src.assignment.algorithm_config import (
    get_active_config,
    create_config_draft,
    publish_config,
    list_configs,
    config_to_dict,
)
from src.assignment.coordinator import TaskAssignmentCoordinator, TaskRequest
from src.assignment.scoring import DEFAULT_CONFIG
from src.errors import ConfigValidationError, NotFoundError
from src.models import AssignmentAlgorithmConfig
from conftest import FIXED_NOW


class TestDrafts:

    def test_defaults_without_any_version(self, db_session):
        assert get_active_config(db_session) == DEFAULT_CONFIG

    def test_drafts_are_versioned_and_inactive(self, db_session):
        first = create_config_draft(db_session, "baseline")
        second = create_config_draft(db_session, "favorites-lite", overrides={
            "bonus_modifiers": {"favorite_artist_bonus": 5}
        })

        assert (first.version, second.version) == (1, 2)
        assert not first.is_active and not second.is_active
        assert get_active_config(db_session) == DEFAULT_CONFIG
        assert [row.version for row in list_configs(db_session)] == [2, 1]

        stored = config_to_dict(second)
        assert stored["config"]["bonus_modifiers"]["favorite_artist_bonus"] == 5
        assert stored["config"]["bonus_modifiers"]["category_specialization_bonus"] == 10

    def test_weights_must_sum_to_100(self, db_session):
        with pytest.raises(ConfigValidationError) as exc:
            create_config_draft(db_session, "skill-heavy", overrides={"weights": {"skill_match": 50}})

        assert exc.value.context == {"weight_totals": {"weights": 115}}
        assert db_session.query(AssignmentAlgorithmConfig).count() == 0

    @pytest.mark.parametrize("overrides", [
        {"mystery": {}},
        {"weights": {"vibes": 10}},
        {"weights": "all skill"},
        {"experience_matrix": {"EPIC": {"JUNIOR": 1}}},
        {"experience_matrix": [1, 2]},
        {"experience_matrix": {"COMPLEX": [90]}},
        {"experience_matrix": {"COMPLEX": {"EXPERT": "lots"}}},
        {"experience_matrix": {"COMPLEX": {"GURU": 100}}},
        {"timezone_settings": {"peak_score": "high"}},
        {"exclusion_rules": {"exclude_vacation_mode": "no"}},
        {"performance_settings": {"volume_cap": 12.5}},
        {"neutral_skill_score": [50]},
    ])
    def test_malformed_overrides_rejected(self, db_session, overrides):
        with pytest.raises(ConfigValidationError) as exc:
            create_config_draft(db_session, "broken", overrides=overrides)
        assert exc.value.error_code == "INVALID_ALGORITHM_CONFIG"


class TestPublish:

    def test_publish_switches_active_version(self, db_session):
        create_config_draft(db_session, "v1", overrides={"bonus_modifiers": {"favorite_artist_bonus": 1}})
        create_config_draft(db_session, "v2", overrides={"bonus_modifiers": {"favorite_artist_bonus": 2}})

        publish_config(db_session, 1)
        assert get_active_config(db_session).bonus_modifiers.favorite_artist_bonus == 1

        published = publish_config(db_session, 2)
        assert published.published_at is not None
        assert get_active_config(db_session).bonus_modifiers.favorite_artist_bonus == 2
        active = db_session.query(AssignmentAlgorithmConfig).filter(AssignmentAlgorithmConfig.is_active.is_(True)).all()
        assert [row.version for row in active] == [2]

    def test_unknown_version(self, db_session):
        with pytest.raises(NotFoundError):
            publish_config(db_session, 42)

    def test_corrupt_active_row_falls_back_to_defaults(self, db_session):
        db_session.add(AssignmentAlgorithmConfig(
            id=str(uuid.uuid4()),
            version=1,
            name="hand-edited",
            is_active=True,
            config_json="{not json",
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow()
        ))
        db_session.commit()

        assert get_active_config(db_session) == DEFAULT_CONFIG

    def test_task_creation_uses_active_config(self, db_session, outbox, make_user, make_freelancer):
        client = make_user(user_id="client-1", credits=10)
        make_freelancer(user_id="f-1", skills=["photography"])
        create_config_draft(db_session, "strict", overrides={"exclusion_rules": {"min_skill_score": 100}})
        publish_config(db_session, 1)

        coordinator = TaskAssignmentCoordinator(db_session, outbox=outbox, clock=lambda: FIXED_NOW)
        outcome = coordinator.create_task(client.id, TaskRequest(
            title="Logo", description="Logo please", credits_required=1, required_skills=["logo"]
        ))

        assert outcome.freelancer_id == "f-1"
        assert outcome.is_fallback is True

    def test_active_row_with_non_numeric_field_falls_back_to_defaults(
        self, db_session, outbox, make_user, make_freelancer
    ):
        client = make_user(user_id="client-1", credits=10)
        make_freelancer(user_id="f-1", skills=["logo"])
        db_session.add(AssignmentAlgorithmConfig(
            id=str(uuid.uuid4()),
            version=1,
            name="hand-edited",
            is_active=True,
            config_json='{"timezone_settings": {"peak_score": "high"}}',
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow()
        ))
        db_session.commit()

        assert get_active_config(db_session) == DEFAULT_CONFIG

        coordinator = TaskAssignmentCoordinator(db_session, outbox=outbox, clock=lambda: FIXED_NOW)
        outcome = coordinator.create_task(client.id, TaskRequest(
            title="Logo", description="Logo please", credits_required=1, required_skills=["logo"]
        ))
        assert outcome.freelancer_id == "f-1"
        assert outcome.is_fallback is False

    def test_active_row_with_bad_weight_totals_falls_back_to_defaults(self, db_session):
        db_session.add(AssignmentAlgorithmConfig(
            id=str(uuid.uuid4()),
            version=1,
            name="hand-edited",
            is_active=True,
            config_json='{"weights": {"skill_match": 90}}',
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow()
        ))
        db_session.commit()

        assert get_active_config(db_session) == DEFAULT_CONFIG
