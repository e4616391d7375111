from __future__ import annotations

from enum import Enum
import math
import re
from typing import Any

from attendance_tools.services.normalize import clean_text

INACTIVE_SCORE = 1
CORE_SCORE = 12
ACTIVE_INCREMENT = 3
ACTIVE_TARGET_MIN = 3
ACTIVE_TARGET_MAX = 11

_LEADING_INT = re.compile(r"^[+-]?\d+")


class ActivityLevel(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    CORE = "core"


class UnknownActivityLevel(ValueError):
    def __init__(self, level: Any) -> None:
        self.level = level
        super().__init__(f'Unknown activity level "{level}".')


def parse_int(value: Any) -> int:
    """Leading base-10 integer of ``value``; 0 when there is none."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return 0
        return int(value)
    match = _LEADING_INT.match(clean_text(value))
    if not match:
        return 0
    return int(match.group(0))


def parse_activity_level(value: Any) -> ActivityLevel:
    if isinstance(value, ActivityLevel):
        return value
    normalized = clean_text(value).lower()
    try:
        return ActivityLevel(normalized)
    except ValueError:
        raise UnknownActivityLevel(value) from None


def resolve_activity_score(level: Any, quarter_events: Any, activity_score: Any) -> int:
    """Target score for a person moved into ``level``.

    Inactive and core are fixed scores. Active adds the increment to the
    current score, then bounds quarter events plus the new score to
    ``[ACTIVE_TARGET_MIN, ACTIVE_TARGET_MAX]``; the result never goes below 0.
    """
    resolved = parse_activity_level(level)
    if resolved is ActivityLevel.INACTIVE:
        return INACTIVE_SCORE
    if resolved is ActivityLevel.CORE:
        return CORE_SCORE

    events = parse_int(quarter_events)
    score = parse_int(activity_score)
    target_sum = events + (score + ACTIVE_INCREMENT)
    target_sum = max(ACTIVE_TARGET_MIN, target_sum)
    target_sum = min(ACTIVE_TARGET_MAX, target_sum)
    return max(0, target_sum - events)
