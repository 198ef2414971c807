#!/usr/bin/env python3
"""CLI for the check-in streak service.

Usage:
    python -m cli <command>

Commands:
    status     Show the current streak, gate and next milestones
    check-in   Record a check-in for the configured user key
    preview    Show base rewards for the next N streak days
    calendar   Show this week's check-in calendar
    migrate    Run database migrations
"""

import argparse
import asyncio
import json
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from core.config import get_settings
from core.database import (
    create_engine,
    create_schema,
    create_session_maker,
    dispose_engine,
)
from core.logger import configure_logging, get_logger
from rendering.checkin import (
    button_label,
    celebrations,
    check_in_message,
    encouraging_message,
)
from schemas import GateStatus
from services.checkin_errors import CheckInError, NotAllowedError
from services.checkin_session import CheckInSession
from services.progress_service import (
    MAX_PREVIEW_DAYS,
    next_day_reward,
    next_streak_milestone,
    upcoming_reward_preview,
    weekly_calendar,
)
from services.streak_store import DatabaseStreakStore, InMemoryStreakStore

logger = get_logger(__name__)


@asynccontextmanager
async def open_session(
    *, memory: bool = False, user_key: str | None = None
) -> AsyncIterator[CheckInSession]:
    """Loaded CheckInSession backed by the configured database (or memory)."""
    settings = get_settings()
    key = user_key or settings.checkin_user_key

    if memory:
        session = CheckInSession(
            InMemoryStreakStore(key),
            settings.cooldown_policy,
            processing_delay=settings.processing_delay_seconds,
        )
        await session.load()
        try:
            yield session
        finally:
            session.close()
        return

    engine = create_engine()
    try:
        if engine.dialect.name == "sqlite":
            await create_schema(engine)
        session = CheckInSession(
            DatabaseStreakStore(create_session_maker(engine), key),
            settings.cooldown_policy,
            processing_delay=settings.processing_delay_seconds,
        )
        await session.load()
        try:
            yield session
        finally:
            session.close()
    finally:
        await dispose_engine(engine)


def _emit(payload: dict, as_json: bool, lines: list[str]) -> None:
    if as_json:
        print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))
    else:
        print("\n".join(lines))


async def cmd_status(args: argparse.Namespace) -> int:
    async with open_session(memory=args.memory, user_key=args.user) as session:
        state = session.state
        gate = session.evaluate_gate()
        streak = 0 if gate.status == GateStatus.STREAK_BROKEN else state.current_streak
        milestone = next_streak_milestone(state)
        reward = next_day_reward(state)

        lines = [
            f"{streak} day streak (best {state.best_streak})",
            encouraging_message(streak),
            f"Total earned: {state.total_points} PL",
            f"Gate: {gate.status.value} - {button_label(gate)}",
            f"Next check-in reward: {reward.points} coins",
        ]
        if milestone is not None:
            lines.append(f"Next badge {milestone.badge} in {milestone.days_remaining} days")
        _emit(
            {
                "state": state.model_dump(mode="json"),
                "gate": gate.status.value,
                "retry_after_seconds": gate.retry_after_seconds,
            },
            args.json,
            lines,
        )
    return 0


async def cmd_check_in(args: argparse.Namespace) -> int:
    async with open_session(memory=args.memory, user_key=args.user) as session:
        try:
            result = await session.process_check_in()
        except NotAllowedError as e:
            print(f"Not yet: try again in {e.retry_after_seconds}s", file=sys.stderr)
            return 2
        except CheckInError as e:
            print(f"Check-in failed: {e}", file=sys.stderr)
            return 1

        _emit(
            result.model_dump(mode="json"),
            args.json,
            [check_in_message(result), *celebrations(result)],
        )
    return 0


async def cmd_preview(args: argparse.Namespace) -> int:
    async with open_session(memory=args.memory, user_key=args.user) as session:
        start = session.state.current_streak + 1
        rewards = list(upcoming_reward_preview(session.state, args.count))
        lines = []
        for offset, entry in enumerate(rewards):
            label = "Tomorrow" if offset == 0 else f"Day {start + offset}"
            extra = " 🎁" if entry.special else (f" {entry.badge}" if entry.badge else "")
            lines.append(f"{label:>9}: {entry.points:>4} coins (${entry.worth:.2f}){extra}")
        _emit(
            {"rewards": [entry.model_dump(mode="json") for entry in rewards]},
            args.json,
            lines,
        )
    return 0


async def cmd_calendar(args: argparse.Namespace) -> int:
    async with open_session(memory=args.memory, user_key=args.user) as session:
        days = weekly_calendar(session.state, session.now().date())
        _emit(
            {"days": [day.model_dump(mode="json") for day in days]},
            args.json,
            [f"{day.weekday} {day.day.isoformat()} {day.status.value}" for day in days],
        )
    return 0


def cmd_migrate() -> int:
    """Run database migrations."""
    from scripts.migrate import run

    logger.info("migrations.starting")
    run("upgrade", "head")
    logger.info("migrations.complete")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Check-in streak CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--user", help="User key (default: CHECKIN_USER_KEY)")
    common.add_argument(
        "--memory", action="store_true", help="Use a throwaway in-memory store"
    )
    common.add_argument("--json", action="store_true", help="Print JSON output")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    subparsers.add_parser("status", parents=[common], help="Show the current streak")
    subparsers.add_parser("check-in", parents=[common], help="Record a check-in")
    preview = subparsers.add_parser(
        "preview", parents=[common], help="Show upcoming rewards"
    )
    preview.add_argument(
        "--count",
        type=int,
        default=7,
        choices=range(1, MAX_PREVIEW_DAYS + 1),
        metavar=f"1-{MAX_PREVIEW_DAYS}",
    )
    subparsers.add_parser("calendar", parents=[common], help="Show this week")
    subparsers.add_parser("migrate", help="Run database migrations")
    return parser


COMMANDS = {
    "status": cmd_status,
    "check-in": cmd_check_in,
    "preview": cmd_preview,
    "calendar": cmd_calendar,
}


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "migrate":
        return cmd_migrate()
    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1
    return asyncio.run(handler(args))


if __name__ == "__main__":
    sys.exit(main())
