"""Data model for Team Balancer."""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Set


@dataclass(frozen=True)
class Participant:
    """A person available to be drawn into a team.

    Attribute values are conceptually in [0, 5] but are stored as given;
    clamping happens at scoring time.
    """

    id: str
    name: str
    rating: Optional[float] = None
    pace: Optional[float] = None
    condition: Optional[float] = None
    participating: bool = True
    recurring: bool = True

    def is_eligible(self) -> bool:
        """Return True if the participant should be included in a draw."""
        return self.participating and self.recurring


@dataclass(frozen=True)
class ScoredParticipant:
    """A participant paired with its derived score for one draw."""

    participant: Participant
    score: float


@dataclass(frozen=True)
class Weights:
    """Relative importance of each attribute in the overall score."""

    rating: float = 0.5
    pace: float = 0.3
    condition: float = 0.2

    @property
    def total(self) -> float:
        return self.rating + self.pace + self.condition


@dataclass
class Team:
    """An ordered group of participants and their accumulated score."""

    members: List[Participant] = field(default_factory=list)
    total_score: float = 0.0

    def add(self, scored: ScoredParticipant) -> None:
        self.members.append(scored.participant)
        self.total_score += scored.score

    def member_ids(self) -> Set[str]:
        return {member.id for member in self.members}

    def __len__(self) -> int:
        return len(self.members)


@dataclass
class Partition:
    """An assignment of every participant into exactly N teams."""

    teams: List[Team] = field(default_factory=list)

    @classmethod
    def empty(cls, team_count: int) -> "Partition":
        return cls([Team() for _ in range(team_count)])

    def __len__(self) -> int:
        return len(self.teams)

    def __iter__(self) -> Iterator[Team]:
        return iter(self.teams)

    def __getitem__(self, index: int) -> Team:
        return self.teams[index]

    def participant_ids(self) -> List[str]:
        return [member.id for team in self.teams for member in team.members]

    def total_score(self) -> float:
        return sum(team.total_score for team in self.teams)

    @property
    def imbalance(self) -> float:
        """Percentage spread between the strongest and weakest team."""
        return calculate_difference(self)


def calculate_difference(partition: Partition) -> float:
    """Calculate the imbalance of a partition as a percentage.

    The imbalance is ``(max_total - min_total) / average_total * 100``.

    Returns:
        Imbalance percentage; 0 with fewer than two teams or a zero average
    """
    if len(partition) < 2:
        return 0.0

    totals = [team.total_score for team in partition]
    average = sum(totals) / len(totals)
    if average == 0:
        return 0.0
    return (max(totals) - min(totals)) / average * 100


@dataclass
class DrawRecord:
    """A stored draw result, as kept in the history."""

    id: str
    partition: Partition
    imbalance: float
    algorithm: str
    timestamp: str
    participant_count: int
