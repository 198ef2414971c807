"""Display copy for the check-in screen.

The engine emits stable identifiers (badge emoji, rank keys, streak counts);
this module maps them to the strings shown to the user.
"""

from schemas import BadgeCatalogItem, CheckInResult, GateResult, StreakState
from services.progress_service import badge_progress
from services.ranks_service import get_rank
from services.rewards_service import CHARGED_BADGE, POWER_USER_BADGE, SPARK_BADGE

# badge -> (name, description)
BADGE_COPY: dict[str, tuple[str, str]] = {
    SPARK_BADGE: ("Spark", "3-day streak"),
    CHARGED_BADGE: ("Charged", "5-day streak"),
    POWER_USER_BADGE: ("Power User", "14-day streak"),
}

BADGE_CELEBRATIONS: dict[str, str] = {
    SPARK_BADGE: "SPARK IGNITED!",
    CHARGED_BADGE: "FULLY CHARGED!",
    POWER_USER_BADGE: "POWER USER UNLOCKED!",
}

CHECK_IN_LABEL = "Check In & Earn Coins"
PROCESSING_LABEL = "Checking in..."
COME_BACK_LABEL = "Come back tomorrow!"

# Cooldowns shorter than this are shown as a countdown instead of "tomorrow"
COUNTDOWN_LABEL_MAX_SECONDS = 60


def encouraging_message(streak: int) -> str:
    if streak == 0:
        return "Start your amazing journey today! 🚀"
    if streak == 1:
        return "Excellent start! Tomorrow's reward is even better!"
    if streak == 2:
        return "Building momentum! Spark badge tomorrow! 🪫"
    if streak == 3:
        return "Spark achieved! You're officially on fire! 🔥"
    if streak == 4:
        return "One day away from Charged status! ⚡"
    if streak == 5:
        return "Charged up! You're unstoppable now! 🔋"
    if streak == 6:
        return "Mystery box tomorrow! Big rewards await! 🎁"
    if streak == 7:
        return "Week champion! Claim your mystery reward! 🏆"
    if streak < 14:
        return f"Power User in {14 - streak} days! Keep going! 💪"
    if streak == 14:
        return "POWER USER STATUS! You're in the elite! ⚡"
    if streak < 30:
        return f"Legendary {streak}-day streak! You're amazing! 🌟"
    if streak < 50:
        return f"Incredible {streak} days! True dedication! 💎"
    if streak < 100:
        return f"{100 - streak} days to CENTURY! History awaits! 👑"
    return f"Day {streak}! Absolute legend! 🏅"


def button_label(gate: GateResult, *, in_flight: bool = False) -> str:
    if in_flight:
        return PROCESSING_LABEL
    if gate.is_open:
        return CHECK_IN_LABEL
    seconds = gate.retry_after_seconds
    if seconds <= COUNTDOWN_LABEL_MAX_SECONDS:
        return f"Next check-in ready in {seconds} seconds"
    return COME_BACK_LABEL


def mystery_title(payout: int) -> str:
    if payout >= 300:
        return "LEGENDARY REWARD!"
    if payout >= 150:
        return "RARE REWARD!"
    return "MYSTERY REWARD!"


def celebrations(result: CheckInResult) -> list[str]:
    """Toast lines for one check-in, in the order they should appear."""
    lines: list[str] = []
    if result.streak_was_reset:
        lines.append("Streak reset. Day 1 starts now!")
    if result.mystery_roll is not None:
        lines.append(f"+{result.mystery_roll} PL! {mystery_title(result.mystery_roll)}")
    for badge in result.badge_events:
        lines.append(f"{badge} {BADGE_CELEBRATIONS.get(badge, 'BADGE UNLOCKED!')}")
    if result.rank_event is not None:
        tier = get_rank(result.rank_event)
        if tier is not None:
            lines.append(f"{tier.symbol} {tier.name.upper()} RANK REACHED!")
    return lines


def check_in_message(result: CheckInResult) -> str:
    return (
        f"+{result.points_awarded} coins. "
        f"{encouraging_message(result.new_state.current_streak)}"
    )


def badge_catalog(state: StreakState) -> list[BadgeCatalogItem]:
    items = []
    for progress in badge_progress(state):
        name, description = BADGE_COPY.get(progress.badge, (progress.badge, ""))
        items.append(
            BadgeCatalogItem(
                badge=progress.badge,
                name=name,
                description=description,
                threshold=progress.threshold,
                unlocked=progress.unlocked,
                percent=progress.percent,
            )
        )
    return items
