"""Team Balancer - A tool to split participants into balanced teams."""

__version__ = "0.1.0"

from .balancer import TeamBalancer, are_partitions_similar, calculate_difference
from .config import Config
from .models import Participant, Partition, Team, Weights
from .scoring import score_participant
from .validators import ValidationError

__all__ = [
    "TeamBalancer",
    "Config",
    "Participant",
    "Partition",
    "Team",
    "Weights",
    "ValidationError",
    "are_partitions_similar",
    "calculate_difference",
    "score_participant",
]
