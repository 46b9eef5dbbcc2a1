# src/assignment/selection.py
import logging
from typing import Optional, List

from .scoring import ArtistScore, ScoreBreakdown

logger = logging.getLogger("designdesk.assignment.selection")


def select_artist(ranked: List[ArtistScore], repository) -> Optional[ArtistScore]:
    """Pick the top-ranked artist, or fall back to any approved freelancer.

    The fallback ignores availability, workload and vacation so that a task
    is never left without an owner while at least one approved freelancer
    exists. It is marked is_fallback with a zero score and breakdown.
    Returns None only when there is no approved freelancer at all.
    """
    eligible = [s for s in ranked if not s.excluded]
    if eligible:
        return eligible[0]

    artist = repository.find_fallback_artist()
    if artist is None:
        logger.warning("No approved freelancers exist - task stays PENDING")
        return None

    logger.warning(f"No eligible artist ranked - falling back to {artist.user_id}")
    return ArtistScore(
        artist=artist,
        total_score=0.0,
        breakdown=ScoreBreakdown(),
        is_fallback=True,
    )
