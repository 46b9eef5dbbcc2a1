# src/assignment/classifier.py
"""
Task complexity and urgency classification.

Both functions are pure and never raise: malformed or missing inputs degrade
to a safe default tier instead of rejecting the request.
"""

import logging
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Any

logger = logging.getLogger("designdesk.assignment.classifier")


class Complexity(str, Enum):
    SIMPLE = "SIMPLE"
    MODERATE = "MODERATE"
    COMPLEX = "COMPLEX"


class Urgency(str, Enum):
    LOW = "LOW"            # No deadline
    NORMAL = "NORMAL"      # More than 72h out
    HIGH = "HIGH"          # Within 72h
    CRITICAL = "CRITICAL"  # Within 24h or already past due


COMPLEX_KEYWORDS = [
    "complex", "advanced", "multi-page", "campaign", "series",
    "animation", "3d", "motion graphics",
]

SIMPLE_KEYWORDS = ["simple", "basic", "quick", "minor", "small", "edit"]

CRITICAL_WINDOW_HOURS = 24
HIGH_WINDOW_HOURS = 72


def _hours_points(estimated_hours: Any) -> int:
    try:
        hours = float(estimated_hours)
    except (TypeError, ValueError):
        return 2
    if math.isnan(hours) or hours < 0:
        return 2
    if hours <= 4:
        return 0
    if hours <= 12:
        return 2
    return 4


def _skills_points(required_skill_count: Any) -> int:
    try:
        count = int(required_skill_count)
    except (TypeError, ValueError):
        count = 0
    if count <= 1:
        return 0
    if count <= 3:
        return 1
    return 2


def _description_points(description: str) -> int:
    length = len(description)
    if length < 300:
        return 0
    if length < 1000:
        return 1
    return 2


def detect_task_complexity(
    estimated_hours: Optional[float],
    required_skill_count: int,
    description: Optional[str]
) -> Complexity:
    """Derive a complexity tier from effort, breadth and brief length.

    Each signal can only push the tier up (keywords aside). An unknown
    estimate counts as a mid-sized job so that a task with no other signal
    lands on MODERATE.
    """
    text = description if isinstance(description, str) else ""

    score = (
        _hours_points(estimated_hours)
        + _skills_points(required_skill_count)
        + _description_points(text)
    )

    lowered = text.lower()
    if any(kw in lowered for kw in COMPLEX_KEYWORDS):
        score += 2
    if any(kw in lowered for kw in SIMPLE_KEYWORDS):
        score -= 1

    if score <= 1:
        tier = Complexity.SIMPLE
    elif score <= 4:
        tier = Complexity.MODERATE
    else:
        tier = Complexity.COMPLEX

    logger.debug(
        "Complexity %s (score=%d, hours=%s, skills=%s, desc_len=%d)",
        tier.value, score, estimated_hours, required_skill_count, len(text)
    )
    return tier


def to_naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is not None:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def detect_task_urgency(deadline: Optional[datetime], now: Optional[datetime] = None) -> Urgency:
    """Derive urgency from deadline proximity. Past-due deadlines are CRITICAL."""
    if not isinstance(deadline, datetime):
        return Urgency.LOW

    current = to_naive_utc(now) if now is not None else datetime.utcnow()
    hours_until = (to_naive_utc(deadline) - current).total_seconds() / 3600

    if hours_until <= CRITICAL_WINDOW_HOURS:
        return Urgency.CRITICAL
    if hours_until <= HIGH_WINDOW_HOURS:
        return Urgency.HIGH
    return Urgency.NORMAL
