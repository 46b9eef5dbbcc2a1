# tests/test_classifier.py
"""
Tests for task complexity and urgency classification.
"""

import sys
import os
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from src.assignment.classifier import (
    Complexity,
    Urgency,
    detect_task_complexity,
    detect_task_urgency,
)

NOW = datetime(2026, 3, 10, 14, 0, 0)


# =============================================================================
# Complexity
# =============================================================================

class TestComplexity:

    def test_small_job_is_simple(self):
        assert detect_task_complexity(2, 1, "Resize a banner") == Complexity.SIMPLE

    def test_long_job_with_many_skills_is_complex(self):
        description = "x" * 1200
        assert detect_task_complexity(20, 5, description) == Complexity.COMPLEX

    def test_medium_effort_is_moderate(self):
        assert detect_task_complexity(8, 2, "Design a flyer for our spring event") == Complexity.MODERATE

    def test_unknown_hours_without_other_signals_is_moderate(self):
        assert detect_task_complexity(None, 0, "") == Complexity.MODERATE

    @pytest.mark.parametrize("bad_hours", ["lots", -3, float("nan"), object()])
    def test_malformed_hours_do_not_raise(self, bad_hours):
        assert detect_task_complexity(bad_hours, 0, "") == Complexity.MODERATE

    def test_missing_description_is_tolerated(self):
        assert detect_task_complexity(1, 0, None) == Complexity.SIMPLE

    def test_complex_keyword_bumps_tier(self):
        plain = detect_task_complexity(13, 0, "A poster for the lobby")
        keyword = detect_task_complexity(13, 0, "An animation for the lobby")
        assert plain == Complexity.MODERATE
        assert keyword == Complexity.COMPLEX

    def test_simple_keyword_lowers_tier(self):
        assert detect_task_complexity(8, 0, "Quick edit of an existing logo") == Complexity.SIMPLE

    def test_monotonic_in_hours(self):
        order = [Complexity.SIMPLE, Complexity.MODERATE, Complexity.COMPLEX]
        tiers = [detect_task_complexity(h, 2, "brief") for h in (1, 4, 6, 12, 13, 40)]
        ranks = [order.index(t) for t in tiers]
        assert ranks == sorted(ranks)


# =============================================================================
# Urgency
# =============================================================================

class TestUrgency:

    def test_no_deadline_is_low(self):
        assert detect_task_urgency(None, NOW) == Urgency.LOW

    def test_within_a_day_is_critical(self):
        assert detect_task_urgency(NOW + timedelta(hours=10), NOW) == Urgency.CRITICAL

    def test_exactly_24h_is_critical(self):
        assert detect_task_urgency(NOW + timedelta(hours=24), NOW) == Urgency.CRITICAL

    def test_past_deadline_is_critical(self):
        assert detect_task_urgency(NOW - timedelta(days=2), NOW) == Urgency.CRITICAL

    def test_within_three_days_is_high(self):
        assert detect_task_urgency(NOW + timedelta(hours=48), NOW) == Urgency.HIGH

    def test_far_deadline_is_normal(self):
        assert detect_task_urgency(NOW + timedelta(days=10), NOW) == Urgency.NORMAL

    def test_timezone_aware_deadline(self):
        deadline = datetime(2026, 3, 11, 1, 0, tzinfo=timezone(timedelta(hours=-5)))  # 06:00 UTC next day
        assert detect_task_urgency(deadline, NOW) == Urgency.CRITICAL

    def test_non_datetime_deadline_is_low(self):
        assert detect_task_urgency("tomorrow", NOW) == Urgency.LOW
