"""Import and export of participants and draw history."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence, Tuple

import yaml

from .models import DrawRecord, Participant, Partition, Team

logger = logging.getLogger("team_balancer.exchange")

CURRENT_VERSION = "1.0.0"


def _participant_to_dict(participant: Participant) -> Dict[str, Any]:
    return {
        'id': participant.id,
        'name': participant.name,
        'rating': participant.rating,
        'pace': participant.pace,
        'condition': participant.condition,
        'participating': participant.participating,
        'recurring': participant.recurring,
    }


def _participant_from_dict(data: Dict[str, Any]) -> Participant:
    if not isinstance(data, dict) or 'id' not in data or 'name' not in data:
        raise ValueError("Each participant needs an 'id' and a 'name'")
    return Participant(
        id=str(data['id']),
        name=str(data['name']),
        rating=data.get('rating'),
        pace=data.get('pace'),
        condition=data.get('condition'),
        participating=bool(data.get('participating', True)),
        recurring=bool(data.get('recurring', True)),
    )


def export_data(participants: Sequence[Participant], history: Sequence[DrawRecord]) -> str:
    """Serialize participants and draw history to a YAML document."""
    data = {
        'version': CURRENT_VERSION,
        'exported_at': datetime.now(timezone.utc).isoformat(),
        'participants': [_participant_to_dict(p) for p in participants],
        'draws': [
            {
                'id': record.id,
                'algorithm': record.algorithm,
                'imbalance': record.imbalance,
                'timestamp': record.timestamp,
                'participant_count': record.participant_count,
                'teams': [
                    {
                        'total': team.total_score,
                        'members': [_participant_to_dict(m) for m in team.members],
                    }
                    for team in record.partition
                ],
            }
            for record in history
        ],
    }
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)


def import_data(text: str) -> Tuple[List[Participant], List[DrawRecord]]:
    """Parse a document produced by export_data.

    Raises:
        yaml.YAMLError: If the text is not valid YAML
        ValueError: If the document structure is invalid
    """
    data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError("Import data must be a YAML dictionary")

    if 'participants' not in data or 'draws' not in data:
        raise ValueError("Import data must contain 'participants' and 'draws'")

    if not isinstance(data['participants'], list) or not isinstance(data['draws'], list):
        raise ValueError("'participants' and 'draws' must be lists")

    version = data.get('version')
    if version != CURRENT_VERSION:
        logger.warning("Version mismatch: %s vs %s", version, CURRENT_VERSION)

    participants = [_participant_from_dict(item) for item in data['participants']]

    history = []
    for item in data['draws']:
        if not isinstance(item, dict) or 'id' not in item:
            raise ValueError("Each draw needs an 'id'")
        raw_teams = item.get('teams', [])
        if not isinstance(raw_teams, list) or not all(isinstance(team, dict) for team in raw_teams):
            raise ValueError("Draw teams must be a list of mappings")
        teams = [
            Team(
                members=[_participant_from_dict(m) for m in team.get('members', [])],
                total_score=float(team.get('total', 0.0)),
            )
            for team in raw_teams
        ]
        history.append(DrawRecord(
            id=str(item['id']),
            partition=Partition(teams),
            imbalance=float(item.get('imbalance', 0.0)),
            algorithm=str(item.get('algorithm', 'fast')),
            timestamp=str(item.get('timestamp', '')),
            participant_count=int(item.get('participant_count', sum(len(t) for t in teams))),
        ))

    return participants, history
