# DesignDesk Assignment Engine
from .classifier import Complexity, Urgency, detect_task_complexity, detect_task_urgency
from .scoring import (
    ExperienceLevel,
    AlgorithmConfig,
    DEFAULT_CONFIG,
    ArtistData,
    TaskData,
    ScoreBreakdown,
    ArtistScore,
    calculate_match_score,
    score_candidates,
    rank_artists_for_task,
)
from .repository import FreelancerRepository, SqlFreelancerRepository, normalize_category_slug
from .selection import select_artist
from .coordinator import TaskAssignmentCoordinator, TaskRequest, AssignmentOutcome
from .algorithm_config import get_active_config, create_config_draft, publish_config, list_configs
from .admin_ops import reassign_task, list_reassignment_candidates, assign_pending_tasks
from .metrics import update_artist_metrics

__all__ = [
    "Complexity",
    "Urgency",
    "detect_task_complexity",
    "detect_task_urgency",
    "ExperienceLevel",
    "AlgorithmConfig",
    "DEFAULT_CONFIG",
    "ArtistData",
    "TaskData",
    "ScoreBreakdown",
    "ArtistScore",
    "calculate_match_score",
    "score_candidates",
    "rank_artists_for_task",
    "FreelancerRepository",
    "SqlFreelancerRepository",
    "normalize_category_slug",
    "select_artist",
    "TaskAssignmentCoordinator",
    "TaskRequest",
    "AssignmentOutcome",
    "get_active_config",
    "create_config_draft",
    "publish_config",
    "list_configs",
    "reassign_task",
    "list_reassignment_candidates",
    "assign_pending_tasks",
    "update_artist_metrics",
]
