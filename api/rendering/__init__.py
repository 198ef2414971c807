"""Rendering module for presentation concerns.

Maps engine identifiers (badges, ranks, gate status) to display copy, so
services stay free of user-facing strings.
"""

from rendering.checkin import (
    badge_catalog,
    button_label,
    celebrations,
    check_in_message,
    encouraging_message,
)

__all__ = [
    "badge_catalog",
    "button_label",
    "celebrations",
    "check_in_message",
    "encouraging_message",
]
