#!/usr/bin/env python3
"""Apply or inspect Alembic migrations for the streak database.

SQLite databases created by the app at startup already have the schema;
use ``stamp`` once before running ``upgrade`` against them.

Usage:
    cd api
    python -m scripts.migrate upgrade
    python -m scripts.migrate downgrade base
    python -m scripts.migrate current
    python -m scripts.migrate stamp head
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

API_DIR = Path(__file__).resolve().parents[1]


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run Alembic migrations")
    sub = parser.add_subparsers(dest="cmd", required=True)

    upgrade = sub.add_parser("upgrade", help="Apply migrations")
    upgrade.add_argument("target", nargs="?", default="head")

    downgrade = sub.add_parser("downgrade", help="Revert migrations")
    downgrade.add_argument("target", nargs="?", default="-1")

    sub.add_parser("current", help="Show current revision")

    stamp = sub.add_parser(
        "stamp", help="Mark a revision as applied without running migrations"
    )
    stamp.add_argument("target", nargs="?", default="head")

    return parser.parse_args(argv)


def get_alembic_config(database_url: str | None = None) -> Config:
    """Alembic config that works from any working directory."""
    if str(API_DIR) not in sys.path:
        sys.path.insert(0, str(API_DIR))

    cfg = Config(str(API_DIR / "alembic.ini"))
    cfg.set_main_option("script_location", str(API_DIR / "alembic"))
    if database_url:
        cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def run(cmd: str, target: str | None = None, database_url: str | None = None) -> None:
    cfg = get_alembic_config(database_url)

    match cmd:
        case "upgrade":
            command.upgrade(cfg, target or "head")
        case "downgrade":
            command.downgrade(cfg, target or "-1")
        case "current":
            command.current(cfg)
        case "stamp":
            command.stamp(cfg, target or "head")
        case _:
            raise ValueError(f"Unknown command: {cmd}")


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    run(args.cmd, getattr(args, "target", None))


if __name__ == "__main__":
    main()
