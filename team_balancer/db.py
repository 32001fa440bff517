import sqlite3 as sql
from typing import Iterable, Optional

from .models import DrawRecord, Participant, Partition, Team

def truncate_participants(conn: sql.Connection) -> None:
  """Truncate the participants table."""
  conn.execute("DROP TABLE IF EXISTS participants")
  conn.execute("""CREATE TABLE participants (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    rating REAL,
    pace REAL,
    condition REAL,
    participating INTEGER NOT NULL DEFAULT 1,
    recurring INTEGER NOT NULL DEFAULT 1,
    CONSTRAINT participants_name_unique UNIQUE (name)
  )""")
  conn.commit()

def truncate_draws(conn: sql.Connection) -> None:
  """Truncate the draw history tables."""
  conn.execute("DROP TABLE IF EXISTS draw_members")
  conn.execute("DROP TABLE IF EXISTS draws")
  conn.execute("""CREATE TABLE draws (
    id TEXT PRIMARY KEY,
    imbalance REAL,
    algorithm TEXT,
    created_at TEXT,
    participant_count INTEGER
  )""")
  conn.execute("""CREATE TABLE draw_members (
    draw_id TEXT,
    team_index INTEGER,
    position INTEGER,
    participant_id TEXT,
    name TEXT,
    score REAL,
    FOREIGN KEY (draw_id) REFERENCES draws(id) ON DELETE CASCADE
  )""")
  conn.commit()

def _row_to_participant(row: tuple) -> Participant:
  id_, name, rating, pace, condition, participating, recurring = row
  return Participant(
    id=id_, name=name, rating=rating, pace=pace, condition=condition,
    participating=bool(participating), recurring=bool(recurring),
  )

def upsert_participants(conn: sql.Connection, participants: Iterable[Participant]) -> None:
  conn.executemany(
    """INSERT INTO participants (id, name, rating, pace, condition, participating, recurring)
    VALUES (?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(id) DO UPDATE
    SET name = excluded.name,
        rating = excluded.rating,
        pace = excluded.pace,
        condition = excluded.condition,
        participating = excluded.participating,
        recurring = excluded.recurring""",
    [
      (p.id, p.name, p.rating, p.pace, p.condition, int(p.participating), int(p.recurring))
      for p in participants
    ],
  )
  conn.commit()

def fetch_participants(conn: sql.Connection, eligible_only: bool = False) -> list[Participant]:
  """Fetch participants ordered by name.

  With eligible_only, only participants who are both participating and recurring are returned.
  """
  query = "SELECT id, name, rating, pace, condition, participating, recurring FROM participants"
  if eligible_only:
    query += " WHERE participating = 1 AND recurring = 1"
  query += " ORDER BY name"
  return [_row_to_participant(row) for row in conn.execute(query).fetchall()]

def fetch_participant_by_name(conn: sql.Connection, name: str) -> Optional[Participant]:
  row = conn.execute(
    "SELECT id, name, rating, pace, condition, participating, recurring FROM participants WHERE name = ?",
    (name,),
  ).fetchone()
  return _row_to_participant(row) if row else None

def is_already_registered(conn: sql.Connection, name: str) -> bool:
  return conn.execute(
    "SELECT COUNT(*) FROM participants WHERE name = ?",
    (name,),
  ).fetchone()[0] > 0

def next_participant_id(conn: sql.Connection) -> int:
  """Next free numeric participant id."""
  ids = [row[0] for row in conn.execute("SELECT id FROM participants").fetchall()]
  numeric = [int(i) for i in ids if str(i).isdigit()]
  return max(numeric, default=0) + 1

def update_attributes(
  conn: sql.Connection,
  name: str,
  rating: Optional[float] = None,
  pace: Optional[float] = None,
  condition: Optional[float] = None,
) -> bool:
  """Update the given attributes of a participant; returns False if unknown."""
  updates = {"rating": rating, "pace": pace, "condition": condition}
  updates = {key: value for key, value in updates.items() if value is not None}
  if not is_already_registered(conn, name):
    return False
  if updates:
    assignments = ", ".join(f"{key} = ?" for key in updates)
    conn.execute(
      f"UPDATE participants SET {assignments} WHERE name = ?",
      [*updates.values(), name],
    )
    conn.commit()
  return True

def set_participation(conn: sql.Connection, name: str, participating: bool) -> bool:
  cursor = conn.execute(
    "UPDATE participants SET participating = ? WHERE name = ?",
    (int(participating), name),
  )
  conn.commit()
  return cursor.rowcount > 0

def set_recurring(conn: sql.Connection, name: str, recurring: bool) -> bool:
  """Set the recurring flag; a non-recurring participant stops participating too."""
  if recurring:
    cursor = conn.execute("UPDATE participants SET recurring = 1 WHERE name = ?", (name,))
  else:
    cursor = conn.execute(
      "UPDATE participants SET recurring = 0, participating = 0 WHERE name = ?",
      (name,),
    )
  conn.commit()
  return cursor.rowcount > 0

def delete_participant(conn: sql.Connection, name: str) -> bool:
  cursor = conn.execute("DELETE FROM participants WHERE name = ?", (name,))
  conn.commit()
  return cursor.rowcount > 0

def insert_draw(conn: sql.Connection, record: DrawRecord, scores: dict[str, float], limit: int = 50) -> None:
  """Store a draw and evict the oldest entries beyond limit."""
  conn.execute(
    "INSERT INTO draws (id, imbalance, algorithm, created_at, participant_count) VALUES (?, ?, ?, ?, ?)",
    (record.id, record.imbalance, record.algorithm, record.timestamp, record.participant_count),
  )
  conn.executemany(
    "INSERT INTO draw_members (draw_id, team_index, position, participant_id, name, score) VALUES (?, ?, ?, ?, ?, ?)",
    [
      (record.id, team_index, position, member.id, member.name, scores.get(member.id, 0.0))
      for team_index, team in enumerate(record.partition)
      for position, member in enumerate(team.members)
    ],
  )
  evicted = [row[0] for row in conn.execute(
    "SELECT id FROM draws ORDER BY created_at DESC, rowid DESC LIMIT -1 OFFSET ?",
    (limit,),
  ).fetchall()]
  conn.executemany("DELETE FROM draw_members WHERE draw_id = ?", [(i,) for i in evicted])
  conn.executemany("DELETE FROM draws WHERE id = ?", [(i,) for i in evicted])
  conn.commit()

def _load_partition(conn: sql.Connection, draw_id: str) -> Partition:
  rows = conn.execute(
    """
    SELECT dm.team_index, dm.participant_id, dm.name, dm.score,
      p.rating, p.pace, p.condition
    FROM draw_members dm
    LEFT JOIN participants p ON p.id = dm.participant_id
    WHERE dm.draw_id = ?
    ORDER BY dm.team_index, dm.position
    """,
    (draw_id,),
  ).fetchall()

  teams: list[Team] = []
  for team_index, participant_id, name, score, rating, pace, condition in rows:
    while len(teams) <= team_index:
      teams.append(Team())
    teams[team_index].members.append(
      Participant(id=participant_id, name=name, rating=rating, pace=pace, condition=condition)
    )
    teams[team_index].total_score += score
  return Partition(teams)

def fetch_history(conn: sql.Connection, limit: Optional[int] = None) -> list[DrawRecord]:
  """Fetch stored draws, newest first."""
  query = "SELECT id, imbalance, algorithm, created_at, participant_count FROM draws ORDER BY created_at DESC, rowid DESC"
  params: tuple = ()
  if limit is not None:
    query += " LIMIT ?"
    params = (limit,)
  return [
    DrawRecord(
      id=draw_id,
      partition=_load_partition(conn, draw_id),
      imbalance=imbalance,
      algorithm=algorithm,
      timestamp=created_at,
      participant_count=participant_count,
    )
    for draw_id, imbalance, algorithm, created_at, participant_count in conn.execute(query, params).fetchall()
  ]

def fetch_latest_partition(conn: sql.Connection) -> Optional[Partition]:
  history = fetch_history(conn, limit=1)
  return history[0].partition if history else None

def fetch_best_draw(conn: sql.Connection) -> Optional[DrawRecord]:
  history = fetch_history(conn)
  if not history:
    return None
  return min(history, key=lambda record: record.imbalance)

def fetch_draw_stats(conn: sql.Connection) -> dict[str, float]:
  total, average, best, worst = conn.execute(
    "SELECT COUNT(*), AVG(imbalance), MIN(imbalance), MAX(imbalance) FROM draws"
  ).fetchone()
  return {
    'total_draws': total,
    'average_difference': average or 0.0,
    'best_difference': best or 0.0,
    'worst_difference': worst or 0.0,
  }
