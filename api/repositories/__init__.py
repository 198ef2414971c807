"""Repository layer for database operations.

Repositories own every SQL statement; services deal only in StreakState.
"""

from repositories.streak_state_repository import StreakStateRepository
from repositories.utils import log_slow_query

__all__ = [
    "StreakStateRepository",
    "log_slow_query",
]
