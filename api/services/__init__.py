"""Service layer for the check-in engine.

Layer hierarchy:
    Routes / CLI -> CheckInSession -> pure services -> StreakStore -> Repositories

The reward, rank, cooldown, check-in and progress modules are pure and
synchronous. Time, randomness and I/O are injected by CheckInSession.
"""
