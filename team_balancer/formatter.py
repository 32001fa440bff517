"""Text rendering of draw results for Team Balancer."""

from typing import Optional

from .balancer import calculate_difference
from .models import Partition


def format_partition_text(partition: Partition, match_name: Optional[str] = None) -> str:
  """Format a partition as a message ready to paste into a group chat."""
  lines = []
  if match_name:
    lines.append(f"*{match_name}*")
    lines.append("")

  lines.append("*TEAMS*")
  lines.append("")

  for number, team in enumerate(partition, start=1):
    lines.append(f"*Team {number}*")
    for position, member in enumerate(team.members, start=1):
      lines.append(f"{position}. {member.name}")
    if number < len(partition):
      lines.append("")

  lines.append("")
  lines.append("Have a good game!")
  return "\n".join(lines)

def format_partition_table(partition: Partition) -> str:
  """Format a partition as a compact console listing with team totals."""
  lines = []
  for number, team in enumerate(partition, start=1):
    names = ", ".join(member.name for member in team.members)
    lines.append(f"Team {number} ({len(team)}, total {team.total_score:.2f}): {names}")
  lines.append(f"Imbalance: {calculate_difference(partition):.1f}%")
  return "\n".join(lines)
