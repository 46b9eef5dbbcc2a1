# src/assignment/scoring.py
"""
Smart Task Assignment - multi-factor scoring.

Each candidate artist is scored on five sub-scores, all on a 0-100 scale:

    skill        overlap of required skills with the artist's skills,
                 specializations and preferred categories
    timezone     artist's local time of day versus their working hours
    experience   experience level, weighted by task complexity
    workload     headroom below the artist's concurrent-task cap
    performance  rating, on-time rate, acceptance rate and volume

The total is a weighted sum (weight profile picked once per ranking call from
the task's complexity and urgency) plus bonus modifiers, capped at 100.
Hard exclusions (vacation, urgent opt-out, capacity) flag a candidate as
excluded with a total of -1; excluded candidates are never ranked.
"""

import logging
import math
from dataclasses import dataclass, field, asdict, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List, Iterable, Set, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .classifier import Complexity, Urgency

logger = logging.getLogger("designdesk.assignment.scoring")


class ExperienceLevel(str, Enum):
    JUNIOR = "JUNIOR"
    MID = "MID"
    SENIOR = "SENIOR"
    EXPERT = "EXPERT"


URGENT_TIERS = (Urgency.HIGH, Urgency.CRITICAL)
EXCLUDED_SCORE = -1.0
NEUTRAL_SCORE = 50.0


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class WeightProfile:
    """Sub-score weights in percent; a profile must sum to 100"""
    skill_match: float = 35
    timezone_fit: float = 20
    experience_match: float = 20
    workload_balance: float = 15
    performance_history: float = 10

    def total(self) -> float:
        return (
            self.skill_match + self.timezone_fit + self.experience_match
            + self.workload_balance + self.performance_history
        )


@dataclass
class TimezoneSettings:
    peak_hours_start: str = "09:00"   # default working window
    peak_hours_end: str = "18:00"
    peak_score: float = 100
    off_shift_score: float = 60       # daytime, outside the artist's own hours
    evening_score: float = 80         # 18-21
    early_morning_score: float = 70   # 07-09
    late_evening_score: float = 50    # 21-23
    night_score: float = 20           # 23-07


@dataclass
class ExclusionRules:
    exclude_vacation_mode: bool = True
    exclude_urgent_opt_out: bool = True
    exclude_overloaded: bool = True
    exclude_night_hours_for_urgent: bool = False
    min_skill_score: float = 0


@dataclass
class BonusModifiers:
    category_specialization_bonus: float = 10
    favorite_artist_bonus: float = 10


@dataclass
class PerformanceSettings:
    rating_weight: float = 0.40
    on_time_weight: float = 0.25
    acceptance_weight: float = 0.20
    volume_weight: float = 0.15
    neutral_rate: float = 0.8
    neutral_rating: float = 3.5
    volume_cap: int = 50


def _default_experience_matrix() -> Dict[str, Dict[str, float]]:
    return {
        Complexity.SIMPLE.value: {"JUNIOR": 70, "MID": 80, "SENIOR": 90, "EXPERT": 100},
        Complexity.MODERATE.value: {"JUNIOR": 50, "MID": 70, "SENIOR": 90, "EXPERT": 100},
        Complexity.COMPLEX.value: {"JUNIOR": 20, "MID": 50, "SENIOR": 85, "EXPERT": 100},
    }


def _coerce(name: str, kind: type, value: Any) -> Any:
    """Convert one config value to its field type. Raises ValueError."""
    if kind is bool:
        if not isinstance(value, bool):
            raise ValueError(f"{name} must be true or false")
        return value
    if kind is str:
        if not isinstance(value, str):
            raise ValueError(f"{name} must be a string")
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"{name} must be a number")
    try:
        number = float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise ValueError(f"{name} must be finite")
    if kind is int:
        if not number.is_integer():
            raise ValueError(f"{name} must be a whole number")
        return int(number)
    return number


def _coerce_section(key: str, section_cls: type, values: Dict[str, Any]) -> Dict[str, Any]:
    kinds = {f.name: f.type for f in fields(section_cls)}
    unknown = set(values) - set(kinds)
    if unknown:
        raise ValueError(f"Unknown {key} fields: {sorted(unknown)}")
    return {name: _coerce(f"{key}.{name}", kinds[name], value) for name, value in values.items()}


@dataclass
class AlgorithmConfig:
    """Tunable scoring policy. Stored as JSON in assignment_algorithm_config."""
    weights: WeightProfile = field(default_factory=WeightProfile)
    complex_weights: WeightProfile = field(default_factory=lambda: WeightProfile(
        skill_match=35, timezone_fit=10, experience_match=30, workload_balance=15, performance_history=10
    ))
    critical_weights: WeightProfile = field(default_factory=lambda: WeightProfile(
        skill_match=20, timezone_fit=30, experience_match=10, workload_balance=30, performance_history=10
    ))
    experience_matrix: Dict[str, Dict[str, float]] = field(default_factory=_default_experience_matrix)
    timezone_settings: TimezoneSettings = field(default_factory=TimezoneSettings)
    exclusion_rules: ExclusionRules = field(default_factory=ExclusionRules)
    bonus_modifiers: BonusModifiers = field(default_factory=BonusModifiers)
    performance_settings: PerformanceSettings = field(default_factory=PerformanceSettings)
    neutral_skill_score: float = NEUTRAL_SCORE

    def weights_for(self, complexity: Complexity, urgency: Urgency) -> WeightProfile:
        """CRITICAL urgency wins over COMPLEX complexity"""
        if urgency == Urgency.CRITICAL:
            return self.critical_weights
        if complexity == Complexity.COMPLEX:
            return self.complex_weights
        return self.weights

    def weight_profiles(self) -> Dict[str, WeightProfile]:
        return {
            "weights": self.weights,
            "complex_weights": self.complex_weights,
            "critical_weights": self.critical_weights,
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AlgorithmConfig":
        """Build a config from a (possibly partial) dict layered over the defaults.

        Values are coerced to their field types. Raises ValueError/TypeError
        on unknown keys, malformed sections or non-numeric values.
        """
        config = cls()
        nested = {
            "weights": WeightProfile,
            "complex_weights": WeightProfile,
            "critical_weights": WeightProfile,
            "timezone_settings": TimezoneSettings,
            "exclusion_rules": ExclusionRules,
            "bonus_modifiers": BonusModifiers,
            "performance_settings": PerformanceSettings,
        }
        data = data or {}
        if not isinstance(data, dict):
            raise TypeError("Algorithm config must be an object")
        for key, value in data.items():
            if key in nested:
                if not isinstance(value, dict):
                    raise TypeError(f"{key} must be an object")
                current = asdict(getattr(config, key))
                current.update(_coerce_section(key, nested[key], value))
                setattr(config, key, nested[key](**current))
            elif key == "experience_matrix":
                if not isinstance(value, dict):
                    raise TypeError("experience_matrix must be an object")
                matrix = _default_experience_matrix()
                for tier, levels in value.items():
                    if tier not in matrix:
                        raise ValueError(f"Unknown complexity tier: {tier}")
                    if not isinstance(levels, dict):
                        raise TypeError(f"experience_matrix.{tier} must be an object")
                    for level, score in levels.items():
                        if level not in matrix[tier]:
                            raise ValueError(f"Unknown experience level: {level}")
                        matrix[tier][level] = _coerce(f"experience_matrix.{tier}.{level}", float, score)
                config.experience_matrix = matrix
            elif key == "neutral_skill_score":
                config.neutral_skill_score = _coerce(key, float, value)
            else:
                raise ValueError(f"Unknown config section: {key}")
        return config


DEFAULT_CONFIG = AlgorithmConfig()


# =============================================================================
# Data Types
# =============================================================================

@dataclass(frozen=True)
class ArtistData:
    """Immutable candidate snapshot for one ranking pass.

    active_tasks is the workload counter read alongside the profile.
    """
    user_id: str
    name: str
    email: str
    timezone: Optional[str] = None
    experience_level: str = ExperienceLevel.JUNIOR.value
    rating: float = 0.0
    completed_tasks: int = 0
    acceptance_rate: Optional[float] = None
    on_time_rate: Optional[float] = None
    max_concurrent_tasks: int = 5
    working_hours_start: str = "09:00"
    working_hours_end: str = "18:00"
    accepts_urgent_tasks: bool = True
    vacation_mode: bool = False
    skills: Tuple[str, ...] = ()
    specializations: Tuple[str, ...] = ()
    preferred_categories: Tuple[str, ...] = ()
    active_tasks: int = 0


@dataclass
class TaskData:
    """Task descriptor handed to the scoring engine"""
    title: str
    complexity: Complexity
    urgency: Urgency
    client_id: str
    required_skills: List[str] = field(default_factory=list)
    category_slug: Optional[str] = None
    description: str = ""
    deadline: Optional[datetime] = None
    id: Optional[str] = None


@dataclass
class ScoreBreakdown:
    skill_score: float = 0.0
    timezone_score: float = 0.0
    experience_score: float = 0.0
    workload_score: float = 0.0
    performance_score: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class ArtistScore:
    artist: ArtistData
    total_score: float
    breakdown: ScoreBreakdown
    excluded: bool = False
    exclusion_reason: Optional[str] = None
    is_fallback: bool = False

    @property
    def active_tasks(self) -> int:
        return self.artist.active_tasks


# =============================================================================
# Sub-scores
# =============================================================================

def _normalize_tags(tags: Iterable[str]) -> List[str]:
    return [t.lower().strip() for t in tags if isinstance(t, str) and t.strip()]


def calculate_skill_score(
    artist_tags: Iterable[str],
    required_skills: Iterable[str],
    config: AlgorithmConfig = DEFAULT_CONFIG
) -> float:
    """Share of required skills the artist covers, 0-100.

    An empty requirement set is neutral rather than perfect or zero.
    """
    required = _normalize_tags(required_skills)
    if not required:
        return config.neutral_skill_score

    available = _normalize_tags(artist_tags)
    matched = [
        skill for skill in required
        if any(tag == skill or skill in tag or tag in skill for tag in available)
    ]
    return round(len(matched) / len(required) * 100, 2)


def _parse_clock(value: Optional[str], default: str) -> float:
    for candidate in (value, default):
        try:
            hour, minute = str(candidate).split(":")
            return int(hour) + int(minute) / 60
        except (TypeError, ValueError):
            continue
    return 0.0


def _local_hour(artist_timezone: Optional[str], now: datetime) -> Optional[float]:
    if not artist_timezone:
        return None
    try:
        zone = ZoneInfo(artist_timezone)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        # OSError covers keys naming a tz directory, e.g. "America"
        logger.warning(f"Unknown artist timezone '{artist_timezone}' - using neutral score")
        return None
    moment = now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)
    local = moment.astimezone(zone)
    return local.hour + local.minute / 60


def _within(hour: float, start: float, end: float) -> bool:
    if start <= end:
        return start <= hour < end
    # Overnight window, e.g. 22:00-06:00
    return hour >= start or hour < end


def calculate_timezone_score(
    artist: ArtistData,
    now: datetime,
    config: AlgorithmConfig = DEFAULT_CONFIG
) -> float:
    """Score how well the artist's current local time suits picking up work"""
    settings = config.timezone_settings
    hour = _local_hour(artist.timezone, now)
    if hour is None:
        return NEUTRAL_SCORE

    start = _parse_clock(artist.working_hours_start, settings.peak_hours_start)
    end = _parse_clock(artist.working_hours_end, settings.peak_hours_end)

    if _within(hour, start, end):
        return settings.peak_score
    if 7 <= hour < 9:
        return settings.early_morning_score
    if 9 <= hour < 18:
        return settings.off_shift_score
    if 18 <= hour < 21:
        return settings.evening_score
    if 21 <= hour < 23:
        return settings.late_evening_score
    return settings.night_score


def is_night_hours(artist_timezone: Optional[str], now: datetime) -> bool:
    hour = _local_hour(artist_timezone, now)
    if hour is None:
        return False
    return hour >= 23 or hour < 7


def calculate_experience_score(
    experience_level: str,
    complexity: Complexity,
    config: AlgorithmConfig = DEFAULT_CONFIG
) -> float:
    row = config.experience_matrix.get(Complexity(complexity).value, {})
    return float(row.get(experience_level, row.get(ExperienceLevel.JUNIOR.value, 0)))


def calculate_workload_score(active_tasks: int, max_concurrent_tasks: int) -> float:
    """Headroom below the cap, 0-100. At or over capacity scores zero."""
    capacity = max(1, max_concurrent_tasks or 1)
    ratio = max(0, active_tasks) / capacity
    return round(max(0.0, min(100.0, (1 - ratio) * 100)), 2)


def _as_fraction(rate: Optional[float], neutral: float) -> float:
    if rate is None:
        return neutral
    value = float(rate)
    # Rates recorded as percentages by older profiles
    if value > 1:
        value = value / 100
    return max(0.0, min(1.0, value))


def calculate_performance_score(
    rating: float,
    on_time_rate: Optional[float],
    acceptance_rate: Optional[float],
    completed_tasks: int,
    config: AlgorithmConfig = DEFAULT_CONFIG
) -> float:
    """Composite track record, 0-100.

    Missing rates fall back to a neutral value, and a brand-new artist
    (no completed tasks, no rating yet) is rated neutrally instead of as 0/5.
    """
    perf = config.performance_settings

    effective_rating = float(rating or 0)
    if completed_tasks <= 0 and effective_rating <= 0:
        effective_rating = perf.neutral_rating
    rating_part = max(0.0, min(5.0, effective_rating)) / 5

    on_time_part = _as_fraction(on_time_rate, perf.neutral_rate)
    acceptance_part = _as_fraction(acceptance_rate, perf.neutral_rate)
    volume_part = min(max(completed_tasks, 0) / perf.volume_cap, 1.0) if perf.volume_cap else 1.0

    score = (
        rating_part * perf.rating_weight
        + on_time_part * perf.on_time_weight
        + acceptance_part * perf.acceptance_weight
        + volume_part * perf.volume_weight
    ) * 100
    return round(score, 2)


# =============================================================================
# Composite Score
# =============================================================================

def _exclusion_reason(
    artist: ArtistData,
    task: TaskData,
    skill_score: float,
    now: datetime,
    config: AlgorithmConfig
) -> Optional[str]:
    rules = config.exclusion_rules
    urgent = task.urgency in URGENT_TIERS

    if rules.exclude_vacation_mode and artist.vacation_mode:
        return "Artist is on vacation"
    if rules.exclude_urgent_opt_out and urgent and not artist.accepts_urgent_tasks:
        return "Artist does not accept urgent tasks"
    if rules.exclude_overloaded and artist.active_tasks >= max(1, artist.max_concurrent_tasks):
        return f"At max capacity ({artist.active_tasks}/{artist.max_concurrent_tasks} tasks)"
    if skill_score < rules.min_skill_score:
        return f"Skill score ({skill_score}) below threshold ({rules.min_skill_score})"
    if rules.exclude_night_hours_for_urgent and urgent and is_night_hours(artist.timezone, now):
        return "Urgent task during night hours"
    return None


def calculate_match_score(
    artist: ArtistData,
    task: TaskData,
    now: datetime,
    config: AlgorithmConfig = DEFAULT_CONFIG,
    is_favorite: bool = False,
    weights: Optional[WeightProfile] = None
) -> ArtistScore:
    """Score one artist against one task"""
    skill_score = calculate_skill_score(
        list(artist.skills) + list(artist.specializations) + list(artist.preferred_categories),
        task.required_skills,
        config
    )
    breakdown = ScoreBreakdown(
        skill_score=skill_score,
        timezone_score=calculate_timezone_score(artist, now, config),
        experience_score=calculate_experience_score(artist.experience_level, task.complexity, config),
        workload_score=calculate_workload_score(artist.active_tasks, artist.max_concurrent_tasks),
        performance_score=calculate_performance_score(
            artist.rating, artist.on_time_rate, artist.acceptance_rate, artist.completed_tasks, config
        ),
    )

    reason = _exclusion_reason(artist, task, skill_score, now, config)
    if reason:
        return ArtistScore(
            artist=artist,
            total_score=EXCLUDED_SCORE,
            breakdown=breakdown,
            excluded=True,
            exclusion_reason=reason,
        )

    w = weights or config.weights_for(task.complexity, task.urgency)
    total = (
        breakdown.skill_score * w.skill_match
        + breakdown.timezone_score * w.timezone_fit
        + breakdown.experience_score * w.experience_match
        + breakdown.workload_score * w.workload_balance
        + breakdown.performance_score * w.performance_history
    ) / 100

    if task.category_slug and task.category_slug in _normalize_tags(artist.preferred_categories):
        total += config.bonus_modifiers.category_specialization_bonus
    if is_favorite:
        total += config.bonus_modifiers.favorite_artist_bonus

    return ArtistScore(
        artist=artist,
        total_score=min(100.0, round(total, 2)),
        breakdown=breakdown,
    )


# =============================================================================
# Ranking
# =============================================================================

def ranking_key(score: ArtistScore):
    """Highest score first, then more completed tasks, lighter load, user id"""
    return (-score.total_score, -score.artist.completed_tasks, score.artist.active_tasks, score.artist.user_id)


def score_candidates(
    candidates: Iterable[ArtistData],
    task: TaskData,
    now: datetime,
    config: AlgorithmConfig = DEFAULT_CONFIG,
    favorite_ids: Optional[Set[str]] = None
) -> List[ArtistScore]:
    """Score every candidate, excluded ones included, in input order"""
    favorites = favorite_ids or set()
    weights = config.weights_for(task.complexity, task.urgency)
    return [
        calculate_match_score(artist, task, now, config, artist.user_id in favorites, weights)
        for artist in candidates
    ]


def rank_scores(scores: Iterable[ArtistScore], top_n: Optional[int] = None) -> List[ArtistScore]:
    eligible = sorted((s for s in scores if not s.excluded), key=ranking_key)
    if top_n is not None and top_n > 0:
        return eligible[:top_n]
    return eligible


def rank_artists_for_task(
    repository,
    task: TaskData,
    top_n: int = 5,
    config: Optional[AlgorithmConfig] = None,
    now: Optional[datetime] = None,
    exclude_user_ids: Optional[Iterable[str]] = None
) -> List[ArtistScore]:
    """Rank available artists for a task, best first.

    Returns an empty list when nobody is available or everybody is excluded;
    repository failures propagate to the caller.
    """
    config = config or DEFAULT_CONFIG
    now = now or datetime.utcnow()
    skip = set(exclude_user_ids or ())

    candidates = [a for a in repository.list_available_artists() if a.user_id not in skip]
    if not candidates:
        logger.info(f"No available artists to rank for task '{task.title[:40]}'")
        return []

    favorites = repository.get_favorite_artist_ids(task.client_id)
    scores = score_candidates(candidates, task, now, config, favorites)
    ranked = rank_scores(scores, top_n)

    excluded = sum(1 for s in scores if s.excluded)
    logger.info(
        f"Ranked artists | task='{task.title[:40]}' | complexity={task.complexity.value} | "
        f"urgency={task.urgency.value} | candidates={len(scores)} | excluded={excluded} | "
        f"top={ranked[0].artist.user_id if ranked else None}"
    )
    return ranked
