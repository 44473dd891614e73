"""Detour budget: how much extra driving a trip can absorb, and how a detour rates against it."""

from __future__ import annotations

import math
from typing import Optional

from ...models.domain import DetourBudget, DetourCategory, DetourStatus

SHORT_ROUTE_MAX_M = 3219  # 2 miles
MEDIUM_ROUTE_MAX_M = 16093  # 10 miles
SHORT_ROUTE_PERCENTAGE = 0.10
MEDIUM_ROUTE_PERCENTAGE = 0.07
LONG_ROUTE_PERCENTAGE = 0.05

MIN_BUFFER_M = 400.0  # 0.25 miles
MAX_BUFFER_M = 1600.0  # 1 mile

NO_DETOUR_THRESHOLD_M = 50.0
MINIMAL_RATIO = 0.25
ACCEPTABLE_RATIO = 0.75

MINIMAL_DETOUR_MAX_MIN = 5.0
SIGNIFICANT_DETOUR_MAX_MIN = 10.0


def calculate_buffer(direct_distance_m: float) -> float:
    """Allowed extra distance for a trip of ``direct_distance_m``, clamped to [400 m, 1600 m]."""
    if direct_distance_m <= SHORT_ROUTE_MAX_M:
        percentage = SHORT_ROUTE_PERCENTAGE
    elif direct_distance_m <= MEDIUM_ROUTE_MAX_M:
        percentage = MEDIUM_ROUTE_PERCENTAGE
    else:
        percentage = LONG_ROUTE_PERCENTAGE
    return max(MIN_BUFFER_M, min(MAX_BUFFER_M, direct_distance_m * percentage))


def get_detour_status(extra_distance_m: float, buffer_m: float) -> DetourStatus:
    if extra_distance_m <= NO_DETOUR_THRESHOLD_M:
        return DetourStatus.NO_DETOUR
    ratio = extra_distance_m / buffer_m if buffer_m > 0 else math.inf
    if ratio <= MINIMAL_RATIO:
        return DetourStatus.MINIMAL
    if ratio <= ACCEPTABLE_RATIO:
        return DetourStatus.ACCEPTABLE
    return DetourStatus.NOT_RECOMMENDED


def categorize_detour(extra_minutes: float) -> DetourCategory:
    if extra_minutes <= MINIMAL_DETOUR_MAX_MIN:
        return DetourCategory.MINIMAL
    if extra_minutes <= SIGNIFICANT_DETOUR_MAX_MIN:
        return DetourCategory.SIGNIFICANT
    return DetourCategory.FAR


def detour_warning_message(category: DetourCategory, extra_minutes: float) -> Optional[str]:
    """User-facing notice for a trip-level detour; ``None`` when no warning is due."""
    minutes = int(math.floor(extra_minutes + 0.5))
    if category is DetourCategory.SIGNIFICANT:
        return f"These stops add about {minutes} minutes to your trip."
    if category is DetourCategory.FAR:
        return f"These stops add {minutes} minutes to your trip. That's a significant detour. Do you want to continue?"
    return None


def is_within_budget(extra_distance_m: float, budget_m: float) -> bool:
    return extra_distance_m <= budget_m


def budget_for(direct_distance_m: float, used_m: float = 0.0) -> DetourBudget:
    return DetourBudget.from_usage(calculate_buffer(direct_distance_m), used_m)
