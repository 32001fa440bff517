"""Validation utilities for Team Balancer."""

from pathlib import Path
from typing import Iterable

import pandas as pd

MAX_NAME_LENGTH = 50
ATTRIBUTE_COLUMNS = ("rating", "pace", "condition")


class ValidationError(ValueError):
    """Raised when a draw cannot be attempted with the given inputs."""


def validate_team_count(num_participants: int, team_count: int) -> None:
    """Validate that the participants can be split into the requested teams.

    Args:
        num_participants: Number of participants in the draw
        team_count: Number of teams requested

    Raises:
        ValidationError: If the team count is below 1 or exceeds the participants
    """
    if team_count < 1:
        raise ValidationError(f"Team count must be at least 1, got {team_count}")

    if num_participants < team_count:
        raise ValidationError(
            f"Need at least {team_count} participants to form {team_count} teams "
            f"(got {num_participants})"
        )


def validate_participant_names(names: Iterable[str]) -> None:
    """Validate participant names.

    Args:
        names: Names to validate

    Raises:
        ValueError: If the names are missing, blank, or too long
    """
    names = list(names)
    if not names:
        raise ValueError("No participants found")

    for name in names:
        if not name or not name.strip():
            raise ValueError("Participant names cannot be empty or whitespace-only")

    for name in names:
        if len(name) > MAX_NAME_LENGTH:
            raise ValueError(
                f"Participant name too long (max {MAX_NAME_LENGTH} chars): '{name[:30]}...'"
            )


def validate_roster_csv(csv_path: Path) -> None:
    """Validate a roster CSV file.

    The roster must have a ``name`` column; ``id``, ``rating``, ``pace`` and
    ``condition`` columns are optional. Attribute cells may be blank, but
    any value present must be numeric.

    Args:
        csv_path: Path to the CSV file to validate

    Raises:
        FileNotFoundError: If the CSV file doesn't exist
        ValueError: If the CSV structure or content is invalid
    """
    if not csv_path.exists():
        raise FileNotFoundError(f"Roster file not found: {csv_path}")

    try:
        df = pd.read_csv(csv_path)
    except pd.errors.EmptyDataError:
        raise ValueError("Roster CSV file is empty")
    except Exception as e:
        raise ValueError(f"Failed to read CSV file: {e}")

    if "name" not in df.columns:
        raise ValueError("Roster CSV must contain a 'name' column")

    if df.shape[0] == 0:
        raise ValueError("Roster CSV must contain at least 1 participant row")

    if df["name"].isna().any():
        raise ValueError("Column 'name' contains missing values")

    validate_participant_names(df["name"].astype(str).tolist())

    for column in ATTRIBUTE_COLUMNS:
        if column not in df.columns:
            continue
        converted = pd.to_numeric(df[column], errors="coerce")
        bad = df[column].notna() & converted.isna()
        if bad.any():
            raise ValueError(f"Column '{column}' contains non-numeric values")
