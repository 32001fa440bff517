"""Participant list parsing for Team Balancer."""

import re
from typing import List, Optional, Tuple

from .validators import MAX_NAME_LENGTH

NUMBERED_RE = re.compile(r"^\d+[.)\-\s]+(.+)$")
WHITESPACE_RE = re.compile(r"\s+")
EDGE_RE = re.compile(r"^[-.\s]+|[-.\s]+$")


def clean_name(name: Optional[str]) -> Optional[str]:
  """Clean a single participant name.

  Collapses runs of whitespace and strips stray dashes and dots from both ends.
  Returns None if nothing usable is left or the name is too long.
  """
  if not name:
    return None

  cleaned = WHITESPACE_RE.sub(" ", name.strip())
  cleaned = EDGE_RE.sub("", cleaned)

  if not cleaned or len(cleaned) > MAX_NAME_LENGTH:
    return None
  return cleaned

def parse_numbered_list(text: str) -> List[str]:
  """Extract names from a numbered list ("1. Ana", "2) Bia", "3 - Caio")."""
  names = []
  for line in text.splitlines():
    line = line.strip()
    if not line:
      continue
    match = NUMBERED_RE.match(line)
    if match:
      name = clean_name(match.group(1))
      if name:
        names.append(name)
  return names

def parse_newline_separated(text: str) -> List[str]:
  """Extract one name per non-blank line."""
  names = []
  for line in text.splitlines():
    name = clean_name(line)
    if name:
      names.append(name)
  return names

def parse_participant_names(text: str) -> List[str]:
  """Parse participant names from a pasted list.

  Numbered lists are tried first, since that is how sign-up lists are usually
  shared; anything else is read as one name per line.
  """
  if not text or not text.strip():
    return []

  text = text.strip()
  names = parse_numbered_list(text)
  if names:
    return names
  return parse_newline_separated(text)

def split_valid_names(names: List[str]) -> Tuple[List[str], List[str]]:
  """Split raw names into cleaned valid names and rejected originals."""
  valid, invalid = [], []
  for name in names:
    cleaned = clean_name(name)
    if cleaned:
      valid.append(cleaned)
    else:
      invalid.append(name)
  return valid, invalid
