"""Configuration management for Team Balancer."""

from pathlib import Path
from typing import Optional

import yaml

from .models import Weights

ALGORITHMS = ("fast", "best")
ALGORITHM_ALIASES = {"greedy": "fast", "optimal": "best"}


def normalize_algorithm(algorithm: str) -> str:
    """Map an algorithm name or alias to ``fast`` or ``best``.

    Raises:
        ValueError: If the name is not recognised
    """
    name = str(algorithm).strip().lower()
    name = ALGORITHM_ALIASES.get(name, name)
    if name not in ALGORITHMS:
        raise ValueError(
            f"Unknown algorithm '{algorithm}' (expected one of: {', '.join(ALGORITHMS)})"
        )
    return name


class Config:
    """Configuration class for team balancing settings."""

    def __init__(self):
        """Initialize configuration with default values."""
        self.rating_weight: float = 0.5
        self.pace_weight: float = 0.3
        self.condition_weight: float = 0.2
        self.team_count: int = 2
        self.algorithm: str = "fast"
        self.history_limit: int = 50
        self.match_name: Optional[str] = None

    def load_from_file(self, config_path: Path) -> None:
        """Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Raises:
            FileNotFoundError: If the config file doesn't exist
            yaml.YAMLError: If the YAML file is invalid
            ValueError: If the configuration structure is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a YAML dictionary")

        weights = config_data.get('weights', {})
        if not isinstance(weights, dict):
            raise ValueError("weights must be a mapping")
        for key in ('rating', 'pace', 'condition'):
            if key in weights:
                value = weights[key]
                if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                    raise ValueError(f"weights.{key} must be a non-negative number")
                setattr(self, f"{key}_weight", float(value))

        team_config = config_data.get('teams', {})
        if not isinstance(team_config, dict):
            raise ValueError("teams must be a mapping")

        if 'count' in team_config:
            count = team_config['count']
            if isinstance(count, bool) or not isinstance(count, int) or count < 1:
                raise ValueError("teams.count must be a positive integer")
            self.team_count = count

        if 'algorithm' in team_config:
            self.algorithm = normalize_algorithm(team_config['algorithm'])

        history_config = config_data.get('history', {})
        if not isinstance(history_config, dict):
            raise ValueError("history must be a mapping")
        if 'limit' in history_config:
            limit = history_config['limit']
            if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
                raise ValueError("history.limit must be a positive integer")
            self.history_limit = limit

        match_config = config_data.get('match', {})
        if not isinstance(match_config, dict):
            raise ValueError("match must be a mapping")
        if match_config.get('name'):
            self.match_name = str(match_config['name']).strip()

    def get_weights(self) -> Weights:
        """Get the attribute weights as a Weights value."""
        return Weights(
            rating=self.rating_weight,
            pace=self.pace_weight,
            condition=self.condition_weight,
        )

    def to_dict(self) -> dict:
        """Convert configuration to dictionary format.

        Returns:
            Dictionary representation of the configuration
        """
        config_dict = {
            'weights': {
                'rating': self.rating_weight,
                'pace': self.pace_weight,
                'condition': self.condition_weight,
            },
            'teams': {
                'count': self.team_count,
                'algorithm': self.algorithm,
            },
            'history': {
                'limit': self.history_limit,
            },
        }

        if self.match_name:
            config_dict['match'] = {'name': self.match_name}

        return config_dict

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to a YAML file.

        Args:
            config_path: Path where to save the configuration
        """
        config_dict = self.to_dict()

        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_dict, f, default_flow_style=False, sort_keys=True)
