"""Core team balancing logic for Team Balancer."""

import logging
import math
import random
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
import yaml

from .config import Config, normalize_algorithm
from .models import Participant, Partition, ScoredParticipant, Weights, calculate_difference
from .scoring import score_participants
from .validators import validate_roster_csv, validate_team_count

logger = logging.getLogger("team_balancer.balancer")

# Pools up to this size use the exhaustive shuffle search for "best".
SMALL_POOL_SIZE = 10

GREEDY_ATTEMPTS = 50
GREEDY_ACCEPT_IMBALANCE = 20.0
BUCKET_SIZE = 0.5
SIMILAR_SCORE_GAP = 0.3

IMPROVED_ATTEMPTS = 30
IMPROVED_ACCEPT_IMBALANCE = 15.0
IMPROVED_TIE_TOLERANCE = 0.01

EXHAUSTIVE_ATTEMPTS = 200
EXHAUSTIVE_ATTEMPTS_NO_HISTORY = 100
EXHAUSTIVE_ACCEPT_VARIANCE = 0.1

_TOTAL_EPSILON = 1e-9


def are_partitions_similar(first: Partition, second: Partition) -> bool:
    """Check whether two partitions put the same people in the same teams.

    Teams are compared position by position; member order inside a team is
    ignored. Partitions with a different number of teams are never similar.
    """
    if len(first) != len(second):
        return False

    for team_a, team_b in zip(first, second):
        if team_a.member_ids() != team_b.member_ids():
            return False
    return True


class TeamBalancer:
    """Main class for splitting participants into balanced teams."""

    def __init__(self, config: Optional[Config] = None, rng: Optional[random.Random] = None):
        """Initialize the team balancer.

        Args:
            config: Configuration object with weights and draw defaults
            rng: Random source; a fresh unseeded one is used when omitted
        """
        self.config = config or Config()
        self.rng = rng or random.Random()

    def balance(
        self,
        participants: Sequence[Participant],
        team_count: Optional[int] = None,
        algorithm: Optional[str] = None,
        weights: Optional[Weights] = None,
        previous: Optional[Partition] = None,
    ) -> Partition:
        """Split participants into balanced teams.

        Args:
            participants: Participants to distribute
            team_count: Number of teams; defaults to the configured count
            algorithm: ``"fast"`` or ``"best"``; defaults to the configured one
            weights: Attribute weights; defaults to the configured weights
            previous: Last partition produced, which should not be repeated

        Returns:
            A partition with exactly ``team_count`` teams

        Raises:
            ValidationError: If there are fewer participants than teams
        """
        if team_count is None:
            team_count = self.config.team_count
        algorithm = normalize_algorithm(algorithm or self.config.algorithm)
        if weights is None:
            weights = self.config.get_weights()

        validate_team_count(len(participants), team_count)

        if previous is not None and len(previous) != team_count:
            logger.debug(
                "Previous partition has %d teams, %d requested; ignoring it",
                len(previous), team_count,
            )
            previous = None

        scored = score_participants(participants, weights)

        if algorithm == "fast":
            return self._balance_greedy(scored, team_count, previous)
        return self._balance_best(scored, team_count, previous)

    def _balance_best(
        self,
        scored: List[ScoredParticipant],
        team_count: int,
        previous: Optional[Partition],
    ) -> Partition:
        """Pick the search strategy for the "best" algorithm by pool size."""
        ordered = sorted(scored, key=lambda s: s.score, reverse=True)

        if len(ordered) <= SMALL_POOL_SIZE:
            return self._balance_exhaustive(ordered, team_count, previous)
        return self._balance_improved_greedy(ordered, team_count, previous)

    def _balance_greedy(
        self,
        scored: List[ScoredParticipant],
        team_count: int,
        previous: Optional[Partition],
    ) -> Partition:
        """Fast randomized greedy distribution.

        Each attempt walks participants from strongest to weakest (with
        near-equal scores shuffled) and gives each one to the weakest team.
        """
        max_attempts = GREEDY_ATTEMPTS if previous is not None else 1
        best: Optional[Partition] = None
        best_difference = math.inf

        for attempt in range(max_attempts):
            partition = Partition.empty(team_count)
            for entry in self._greedy_order(scored):
                self._weakest_team(partition, randomize=True).add(entry)

            if previous is not None and are_partitions_similar(partition, previous):
                continue

            difference = calculate_difference(partition)
            if difference < best_difference:
                best_difference = difference
                best = partition

            if difference < GREEDY_ACCEPT_IMBALANCE:
                logger.debug("Greedy accepted attempt %d (%.2f%%)", attempt + 1, difference)
                return partition

        if best is not None:
            return best

        logger.warning("Greedy could not avoid the previous draw; using deterministic order")
        return self._greedy_fallback(scored, team_count)

    def _greedy_order(self, scored: List[ScoredParticipant]) -> List[ScoredParticipant]:
        """Order participants strongest first, with some randomness among equals."""
        buckets: Dict[float, List[ScoredParticipant]] = {}
        for entry in scored:
            level = math.floor(entry.score / BUCKET_SIZE + 0.5) * BUCKET_SIZE
            buckets.setdefault(level, []).append(entry)

        order: List[ScoredParticipant] = []
        for level in sorted(buckets, reverse=True):
            group = buckets[level]
            self.rng.shuffle(group)
            order.extend(group)

        # Neighbours with close scores swap places half of the time
        for i in range(len(order) - 1):
            if abs(order[i].score - order[i + 1].score) < SIMILAR_SCORE_GAP and self.rng.random() < 0.5:
                order[i], order[i + 1] = order[i + 1], order[i]

        return order

    def _weakest_team(self, partition: Partition, randomize: bool):
        lowest = min(team.total_score for team in partition)
        candidates = [team for team in partition if team.total_score - lowest < _TOTAL_EPSILON]
        if randomize and len(candidates) > 1:
            return self.rng.choice(candidates)
        return candidates[0]

    def _greedy_fallback(self, scored: List[ScoredParticipant], team_count: int) -> Partition:
        """Deterministic greedy: strongest first, first team wins ties."""
        partition = Partition.empty(team_count)
        for entry in sorted(scored, key=lambda s: s.score, reverse=True):
            self._weakest_team(partition, randomize=False).add(entry)
        return partition

    def _balance_improved_greedy(
        self,
        ordered: List[ScoredParticipant],
        team_count: int,
        previous: Optional[Partition],
    ) -> Partition:
        """Seeded greedy for larger pools.

        The top ``team_count`` participants seed one team each; everyone else
        goes to the team whose new total lands closest to the mean of the
        other teams.
        """
        max_attempts = IMPROVED_ATTEMPTS if previous is not None else 1
        best: Optional[Partition] = None
        best_difference = math.inf

        for attempt in range(max_attempts):
            partition = self._improved_greedy_attempt(ordered, team_count, randomize=attempt > 0)

            if previous is not None and are_partitions_similar(partition, previous):
                continue

            difference = calculate_difference(partition)
            if difference < best_difference:
                best_difference = difference
                best = partition

            if difference < IMPROVED_ACCEPT_IMBALANCE:
                logger.debug("Improved greedy accepted attempt %d (%.2f%%)", attempt + 1, difference)
                return partition

        if best is not None:
            return best

        logger.warning("Improved greedy could not avoid the previous draw; using unshuffled order")
        return self._improved_greedy_attempt(ordered, team_count, randomize=False, tie_break=False)

    def _improved_greedy_attempt(
        self,
        ordered: List[ScoredParticipant],
        team_count: int,
        randomize: bool,
        tie_break: bool = True,
    ) -> Partition:
        partition = Partition.empty(team_count)

        seeds = list(ordered[:team_count])
        remaining = list(ordered[team_count:])
        if randomize:
            self.rng.shuffle(seeds)
            self.rng.shuffle(remaining)

        for team, seed in zip(partition, seeds):
            team.add(seed)

        for entry in remaining:
            imbalances = []
            for index, team in enumerate(partition):
                others = [t.total_score for i, t in enumerate(partition) if i != index]
                other_mean = sum(others) / len(others) if others else 0.0
                imbalances.append(abs(team.total_score + entry.score - other_mean))

            lowest = min(imbalances)
            if tie_break:
                candidates = [
                    index for index, value in enumerate(imbalances)
                    if value - lowest < IMPROVED_TIE_TOLERANCE
                ]
                chosen = self.rng.choice(candidates)
            else:
                chosen = imbalances.index(lowest)
            partition[chosen].add(entry)

        return partition

    def _balance_exhaustive(
        self,
        ordered: List[ScoredParticipant],
        team_count: int,
        previous: Optional[Partition],
    ) -> Partition:
        """Repeated full-shuffle search for small pools.

        Keeps the distinct candidate whose team totals have the smallest
        squared deviation from the ideal per-team total.
        """
        target = sum(entry.score for entry in ordered) / team_count
        max_attempts = EXHAUSTIVE_ATTEMPTS if previous is not None else EXHAUSTIVE_ATTEMPTS_NO_HISTORY
        best: Optional[Partition] = None
        best_variance = math.inf

        for attempt in range(max_attempts):
            shuffled = list(ordered)
            self.rng.shuffle(shuffled)

            partition = Partition.empty(team_count)
            for entry in shuffled:
                self._weakest_team(partition, randomize=True).add(entry)

            if previous is not None and are_partitions_similar(partition, previous):
                continue

            variance = sum((team.total_score - target) ** 2 for team in partition)
            if variance < best_variance:
                best_variance = variance
                best = partition
                if variance < EXHAUSTIVE_ACCEPT_VARIANCE:
                    logger.debug("Exhaustive search accepted attempt %d (variance %.4f)", attempt + 1, variance)
                    return partition

        if best is not None:
            return best

        logger.warning("Exhaustive search found no distinct draw; falling back to greedy")
        return self._balance_greedy(ordered, team_count, previous)

    def load_participants_csv(
        self,
        roster_file: Path,
        known_ids: Optional[Dict[str, str]] = None,
        next_id: int = 1,
    ) -> List[Participant]:
        """Load participants from a roster CSV file.

        Args:
            roster_file: CSV with a ``name`` column and optional ``id``,
                ``rating``, ``pace`` and ``condition`` columns
            known_ids: Ids of already registered participants, by name
            next_id: First numeric id handed out to new names without an id

        Returns:
            Participants in file order. A row without an id keeps the id
            registered for its name, or gets the next free numeric id.
        """
        validate_roster_csv(roster_file)
        df = pd.read_csv(roster_file, dtype={'id': str})
        known_ids = known_ids or {}

        participants = []
        for _, row in df.iterrows():
            name = str(row['name']).strip()
            if 'id' in df.columns and not pd.isna(row['id']):
                participant_id = str(row['id']).strip()
            elif name in known_ids:
                participant_id = known_ids[name]
            else:
                participant_id = str(next_id)
                next_id += 1

            attributes = {}
            for column in ('rating', 'pace', 'condition'):
                value = row[column] if column in df.columns else None
                attributes[column] = None if value is None or pd.isna(value) else float(value)

            participants.append(Participant(id=participant_id, name=name, **attributes))

        return participants

    def save_partition_csv(
        self,
        partition: Partition,
        output_path: Path,
        weights: Optional[Weights] = None,
    ) -> None:
        """Save a partition to CSV, one row per member.

        Args:
            partition: Partition to save
            output_path: Path where to save the CSV
            weights: Weights the draw was made with; defaults to the configured weights
        """
        if weights is None:
            weights = self.config.get_weights()
        rows = []
        for team_number, team in enumerate(partition, start=1):
            for scored in score_participants(team.members, weights):
                rows.append({
                    'team': team_number,
                    'id': scored.participant.id,
                    'name': scored.participant.name,
                    'score': round(scored.score, 2),
                })

        df = pd.DataFrame(rows, columns=['team', 'id', 'name', 'score'])
        df.to_csv(output_path, index=False)

    def save_partition_yaml(self, partition: Partition, output_path: Path) -> None:
        """Save a partition to YAML with members grouped by team.

        Args:
            partition: Partition to save
            output_path: Path where to save the YAML
        """
        yaml_data = {
            'teams': {
                team_number: {
                    'members': [member.name for member in team.members],
                    'total': round(team.total_score, 2),
                }
                for team_number, team in enumerate(partition, start=1)
            },
            'imbalance': round(calculate_difference(partition), 2),
        }

        with open(output_path, 'w', encoding='utf-8') as f:
            yaml.dump(yaml_data, f, default_flow_style=False, sort_keys=True)

    def get_partition_summary(self, partition: Partition) -> Dict[str, Any]:
        """Get a summary of a partition.

        Args:
            partition: Partition to summarize

        Returns:
            Dictionary with draw statistics
        """
        if len(partition) == 0:
            return {
                'total_participants': 0,
                'teams': {},
                'team_sizes': {},
                'team_totals': {},
                'imbalance': 0.0,
            }

        teams = {
            number: [member.name for member in team.members]
            for number, team in enumerate(partition, start=1)
        }

        return {
            'total_participants': sum(len(team) for team in partition),
            'teams': teams,
            'team_sizes': {number: len(names) for number, names in teams.items()},
            'team_totals': {
                number: round(team.total_score, 2)
                for number, team in enumerate(partition, start=1)
            },
            'imbalance': round(calculate_difference(partition), 2),
        }
