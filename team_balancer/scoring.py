"""Participant scoring for Team Balancer."""

from typing import Iterable, List, Optional

from .models import Participant, ScoredParticipant, Weights

MIN_ATTRIBUTE = 0.0
MAX_ATTRIBUTE = 5.0

DEFAULT_WEIGHTS = Weights()


def _clamp(value: Optional[float]) -> float:
    if value is None:
        return MIN_ATTRIBUTE
    return min(MAX_ATTRIBUTE, max(MIN_ATTRIBUTE, float(value)))


def score_participant(participant: Participant, weights: Optional[Weights] = None) -> float:
    """Compute the overall score of a participant.

    Each attribute is clamped into [0, 5] (a missing attribute counts as 0)
    and the score is their weighted average.

    Args:
        participant: Participant to score
        weights: Attribute weights; defaults to rating 0.5, pace 0.3, condition 0.2

    Returns:
        Score in [0, 5], or 0 when every weight is zero
    """
    weights = weights or DEFAULT_WEIGHTS
    total_weight = weights.total
    if total_weight <= 0:
        return 0.0

    weighted_sum = (
        _clamp(participant.rating) * weights.rating
        + _clamp(participant.pace) * weights.pace
        + _clamp(participant.condition) * weights.condition
    )
    return weighted_sum / total_weight


def score_participants(
    participants: Iterable[Participant],
    weights: Optional[Weights] = None,
) -> List[ScoredParticipant]:
    """Pair every participant with its score, preserving input order."""
    return [
        ScoredParticipant(participant, score_participant(participant, weights))
        for participant in participants
    ]
