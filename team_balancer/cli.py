"""Command line interface for Team Balancer."""

import logging
import sqlite3 as sql
import sys
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import click
import yaml

import team_balancer.db as db
from team_balancer.balancer import TeamBalancer
from team_balancer.config import ALGORITHMS, ALGORITHM_ALIASES, Config, normalize_algorithm
from team_balancer.exchange import export_data, import_data
from team_balancer.formatter import format_partition_table, format_partition_text
from team_balancer.models import DrawRecord, Participant
from team_balancer.parsing import parse_participant_names
from team_balancer.scoring import score_participants
from team_balancer.validators import ValidationError


def fail(message: str) -> None:
  click.secho(f"Error: {message}", fg="red")
  sys.exit(1)

def scores_for(participants: list[Participant], config: Config) -> dict[str, float]:
  return {s.participant.id: s.score for s in score_participants(participants, config.get_weights())}

@click.group()
@click.option("--config", "config_file", type=click.Path(path_type=Path), default=None,
              help="YAML configuration file")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[Path], verbose: bool):
  """Team Balancer CLI for drawing balanced teams."""
  logging.basicConfig(
    level=logging.DEBUG if verbose else logging.WARNING,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
  )

  config = Config()
  if config_file is not None:
    try:
      config.load_from_file(config_file)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
      fail(str(e))
  ctx.obj = config

@cli.command()
@click.argument("db_file", type=click.Path(path_type=Path))
def init(db_file: Path):
  """Initialize the database."""
  if db_file.exists():
    db_file.unlink()

  with sql.connect(db_file) as conn:
    db.truncate_participants(conn)
    db.truncate_draws(conn)
    click.secho(f"Initialized database {db_file}", fg="green")

@cli.command()
@click.argument("db_file", type=click.Path(exists=True, path_type=Path))
@click.option("--input", "input_files", type=click.Path(exists=True, path_type=Path),
              multiple=True, help="Files with participant names, numbered or one per line")
def add(db_file: Path, input_files: list[Path]):
  """Register participants from name lists."""
  if not input_files:
    fail("At least one input file must be specified with --input")

  with sql.connect(db_file) as conn:
    added = 0
    for path in input_files:
      names = parse_participant_names(path.read_text(encoding="utf-8"))
      click.secho(f"{path.name}: {len(names)} names", fg="blue")
      for name in names:
        if db.is_already_registered(conn, name):
          click.secho(f"{name} already registered; skipping", fg="yellow")
          continue
        participant_id = str(db.next_participant_id(conn))
        db.upsert_participants(conn, [Participant(id=participant_id, name=name)])
        added += 1
    click.secho(f"Added {added} participants to {db_file}", fg="green")

@cli.command("import-csv")
@click.argument("db_file", type=click.Path(exists=True, path_type=Path))
@click.argument("roster_file", type=click.Path(exists=True, path_type=Path))
@click.pass_obj
def import_csv(config: Config, db_file: Path, roster_file: Path):
  """Register participants and their attributes from a roster CSV.

  Rows whose name is already registered update that participant; new names
  without an id get the next free id.
  """
  balancer = TeamBalancer(config)

  with sql.connect(db_file) as conn:
    registered = {p.name: p for p in db.fetch_participants(conn)}
    try:
      participants = balancer.load_participants_csv(
        roster_file,
        known_ids={name: p.id for name, p in registered.items()},
        next_id=db.next_participant_id(conn),
      )
    except (FileNotFoundError, ValueError) as e:
      fail(str(e))

    # attributes come from the roster, draw flags stay as stored
    participants = [
      replace(p, participating=registered[p.name].participating, recurring=registered[p.name].recurring)
      if p.name in registered and registered[p.name].id == p.id else p
      for p in participants
    ]

    try:
      db.upsert_participants(conn, participants)
    except sql.IntegrityError as e:
      conn.rollback()
      fail(f"Could not import {roster_file}: {e}")
    click.secho(f"Imported {len(participants)} participants from {roster_file}", fg="green")

@cli.command()
@click.argument("db_file", type=click.Path(exists=True, path_type=Path))
@click.argument("name")
@click.option("--rating", type=float, help="Skill rating, 0-5")
@click.option("--pace", type=float, help="Pace, 0-5")
@click.option("--condition", type=float, help="Physical condition, 0-5")
def rate(db_file: Path, name: str, rating: Optional[float], pace: Optional[float], condition: Optional[float]):
  """Set the attributes of a participant."""
  with sql.connect(db_file) as conn:
    if not db.update_attributes(conn, name, rating=rating, pace=pace, condition=condition):
      fail(f"Unknown participant {name}")
    for label, value in (("rating", rating), ("pace", pace), ("condition", condition)):
      if value is not None and not 0 <= value <= 5:
        click.secho(f"{label} {value} is outside 0-5 and will be clamped when drawing", fg="yellow")
    click.secho(f"Updated {name}", fg="green")

@cli.command()
@click.argument("db_file", type=click.Path(exists=True, path_type=Path))
@click.argument("name")
@click.option("--recurring", is_flag=True, help="Toggle the recurring flag instead of participation")
def toggle(db_file: Path, name: str, recurring: bool):
  """Toggle whether a participant takes part in the next draw."""
  with sql.connect(db_file) as conn:
    participant = db.fetch_participant_by_name(conn, name)
    if participant is None:
      fail(f"Unknown participant {name}")

    if recurring:
      db.set_recurring(conn, name, not participant.recurring)
      click.secho(f"{name} recurring: {not participant.recurring}", fg="green")
    else:
      db.set_participation(conn, name, not participant.participating)
      click.secho(f"{name} participating: {not participant.participating}", fg="green")

@cli.command("list")
@click.argument("db_file", type=click.Path(exists=True, path_type=Path))
@click.pass_obj
def list_participants(config: Config, db_file: Path):
  """List registered participants and their scores."""
  with sql.connect(db_file) as conn:
    participants = db.fetch_participants(conn)

  scores = scores_for(participants, config)
  for p in participants:
    color = "green" if p.is_eligible() else "white"
    click.secho(
      f"{p.name:<25} score {scores[p.id]:.2f}  "
      f"(rating {p.rating}, pace {p.pace}, condition {p.condition})"
      f"{'' if p.is_eligible() else '  [out]'}",
      fg=color,
    )
  click.secho(f"{sum(p.is_eligible() for p in participants)} of {len(participants)} participating", fg="blue")

@cli.command()
@click.argument("db_file", type=click.Path(exists=True, path_type=Path))
@click.option("--teams", "team_count", type=int, default=None, help="Number of teams")
@click.option("--algorithm", type=click.Choice(list(ALGORITHMS) + list(ALGORITHM_ALIASES)),
              default=None, help="Balancing algorithm")
@click.option("--match-name", default=None, help="Title for the shareable message")
@click.option("--output-csv", type=click.Path(path_type=Path), default=None)
@click.option("--output-yaml", type=click.Path(path_type=Path), default=None)
@click.pass_obj
def draw(
  config: Config,
  db_file: Path,
  team_count: Optional[int],
  algorithm: Optional[str],
  match_name: Optional[str],
  output_csv: Optional[Path],
  output_yaml: Optional[Path],
):
  """Draw balanced teams from the participating players."""
  balancer = TeamBalancer(config)

  with sql.connect(db_file) as conn:
    participants = db.fetch_participants(conn, eligible_only=True)
    previous = db.fetch_latest_partition(conn)

    try:
      partition = balancer.balance(participants, team_count=team_count, algorithm=algorithm, previous=previous)
    except ValidationError as e:
      fail(str(e))

    record = DrawRecord(
      id=str(uuid.uuid4()),
      partition=partition,
      imbalance=partition.imbalance,
      algorithm=normalize_algorithm(algorithm or config.algorithm),
      timestamp=datetime.now(timezone.utc).isoformat(),
      participant_count=len(participants),
    )
    db.insert_draw(conn, record, scores_for(participants, config), limit=config.history_limit)

  click.secho(format_partition_table(partition), fg="blue")
  click.echo()
  click.echo(format_partition_text(partition, match_name or config.match_name))

  if output_csv:
    balancer.save_partition_csv(partition, output_csv)
    click.secho(f"Saved teams to {output_csv}", fg="green")
  if output_yaml:
    balancer.save_partition_yaml(partition, output_yaml)
    click.secho(f"Saved teams to {output_yaml}", fg="green")

@cli.command()
@click.argument("db_file", type=click.Path(exists=True, path_type=Path))
@click.option("--limit", type=int, default=10, help="Number of draws to show")
def history(db_file: Path, limit: int):
  """Show the most recent draws."""
  with sql.connect(db_file) as conn:
    records = db.fetch_history(conn, limit=limit)

  if not records:
    click.secho("No draws yet", fg="yellow")
    return

  for record in records:
    click.secho(
      f"{record.timestamp}  {record.algorithm:<5} {record.participant_count} players  "
      f"imbalance {record.imbalance:.1f}%",
      fg="blue",
    )
    click.echo(format_partition_table(record.partition))

@cli.command()
@click.argument("db_file", type=click.Path(exists=True, path_type=Path))
def stats(db_file: Path):
  """Show statistics over the draw history."""
  with sql.connect(db_file) as conn:
    summary = db.fetch_draw_stats(conn)
    best = db.fetch_best_draw(conn)

  click.secho(f"Total draws: {summary['total_draws']}", fg="blue")
  click.secho(f"Average imbalance: {summary['average_difference']:.1f}%", fg="blue")
  click.secho(f"Best imbalance: {summary['best_difference']:.1f}%", fg="green")
  click.secho(f"Worst imbalance: {summary['worst_difference']:.1f}%", fg="yellow")
  if best is not None:
    click.secho(f"Best draw: {best.timestamp}", fg="green")

@cli.command("export")
@click.argument("db_file", type=click.Path(exists=True, path_type=Path))
@click.argument("output_file", type=click.Path(path_type=Path))
def export_command(db_file: Path, output_file: Path):
  """Export participants and draw history to YAML."""
  with sql.connect(db_file) as conn:
    text = export_data(db.fetch_participants(conn), db.fetch_history(conn))
  output_file.write_text(text, encoding="utf-8")
  click.secho(f"Exported {db_file} to {output_file}", fg="green")

@cli.command("import")
@click.argument("db_file", type=click.Path(exists=True, path_type=Path))
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.pass_obj
def import_command(config: Config, db_file: Path, input_file: Path):
  """Import participants and draw history from a YAML export."""
  try:
    participants, records = import_data(input_file.read_text(encoding="utf-8"))
  except (ValueError, yaml.YAMLError) as e:
    fail(f"Invalid import file: {e}")

  with sql.connect(db_file) as conn:
    db.upsert_participants(conn, participants)
    known = {row[0] for row in conn.execute("SELECT id FROM draws").fetchall()}
    for record in reversed(records):
      if record.id in known:
        continue
      members = [m for team in record.partition for m in team.members]
      db.insert_draw(conn, record, scores_for(members, config), limit=config.history_limit)
  click.secho(f"Imported {len(participants)} participants and {len(records)} draws", fg="green")

if __name__ == "__main__":
  cli()
