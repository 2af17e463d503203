"""
XP and level calculation for the exponential progression system.

Each level costs ``base_xp * growth_factor ** (level - 2)`` XP (rounded), so
level 2 costs 100, level 3 costs 150, level 4 costs 225 with the defaults.
Level is always derived from total XP and never stored on its own.
"""

import math
from dataclasses import dataclass, asdict
from typing import List

from config import settings

DEFAULT_BASE_XP = settings.XP_BASE
DEFAULT_GROWTH_FACTOR = settings.XP_GROWTH_FACTOR


@dataclass
class LevelProgress:
    level: int
    xp_in_level: int
    xp_for_next: int
    total_xp_for_current_level: int
    progress: float  # 0 to 1

    def to_dict(self):
        return asdict(self)


@dataclass
class LadderLevel:
    level: int
    total_xp_required: int
    xp_required: int
    is_completed: bool
    is_current: bool
    is_locked: bool
    progress: float

    def to_dict(self):
        return asdict(self)


@dataclass
class XPRewards:
    lesson: int
    correct_answer: int
    streak_bonus_per_day: int

    def streak_bonus(self, streak_days: int) -> int:
        return self.streak_bonus_per_day * streak_days


def _round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; the curve is defined with half-up
    return int(math.floor(value + 0.5))


def xp_required_for_level(level: int, base_xp: int = DEFAULT_BASE_XP, growth_factor: float = DEFAULT_GROWTH_FACTOR) -> int:
    """XP needed to go from ``level - 1`` to ``level``"""
    if level <= 1:
        return 0
    return _round_half_up(base_xp * growth_factor ** (level - 2))


def total_xp_for_level(level: int, base_xp: int = DEFAULT_BASE_XP, growth_factor: float = DEFAULT_GROWTH_FACTOR) -> int:
    """Cumulative XP needed to reach ``level`` from level 1.

    Summed term by term so per-level rounding accumulates exactly as the
    displayed per-level costs do.
    """
    if level <= 1:
        return 0

    total = 0
    for i in range(2, level + 1):
        total += xp_required_for_level(i, base_xp, growth_factor)
    return total


def get_level_and_progress(
    total_xp: int, base_xp: int = DEFAULT_BASE_XP, growth_factor: float = DEFAULT_GROWTH_FACTOR
) -> LevelProgress:
    """Level reached with ``total_xp`` and the progress inside that level"""
    level = 1
    remaining = max(0, total_xp)

    while True:
        cost = xp_required_for_level(level + 1, base_xp, growth_factor)
        if cost > 0 and remaining >= cost:
            remaining -= cost
            level += 1
        else:
            break

    xp_for_next = xp_required_for_level(level + 1, base_xp, growth_factor)
    progress = remaining / xp_for_next if xp_for_next > 0 else 0.0

    return LevelProgress(
        level=level,
        xp_in_level=remaining,
        xp_for_next=xp_for_next,
        total_xp_for_current_level=total_xp_for_level(level, base_xp, growth_factor),
        progress=min(progress, 1.0),
    )


def get_level_progress_percentage(
    total_xp: int, base_xp: int = DEFAULT_BASE_XP, growth_factor: float = DEFAULT_GROWTH_FACTOR
) -> int:
    """Progress in the current level as 0-100"""
    return _round_half_up(get_level_and_progress(total_xp, base_xp, growth_factor).progress * 100)


def ladder_bounds(current_level: int, show_levels: int) -> tuple:
    """First and last level of a ladder window.

    Starts two levels below the current one (never below 1) and spans at
    least ``show_levels`` levels and at least three levels above current.
    """
    start = max(1, current_level - 2)
    end = max(start + max(show_levels, 1) - 1, current_level + 3)
    return start, end


def generate_level_ladder(
    total_xp: int,
    show_levels: int = 8,
    base_xp: int = DEFAULT_BASE_XP,
    growth_factor: float = DEFAULT_GROWTH_FACTOR,
) -> List[LadderLevel]:
    """Window of levels around the current one for the level progress view"""
    current = get_level_and_progress(total_xp, base_xp, growth_factor)
    start, end = ladder_bounds(current.level, show_levels)

    ladder = []
    for level in range(start, end + 1):
        threshold = total_xp_for_level(level, base_xp, growth_factor)
        is_completed = total_xp >= threshold
        is_current = level == current.level

        if is_current:
            progress = current.progress
        elif is_completed:
            progress = 1.0
        else:
            progress = 0.0

        ladder.append(
            LadderLevel(
                level=level,
                total_xp_required=threshold,
                xp_required=xp_required_for_level(level, base_xp, growth_factor),
                is_completed=is_completed,
                is_current=is_current,
                is_locked=not is_completed and not is_current,
                progress=progress,
            )
        )

    return ladder


def format_xp(xp: int) -> str:
    """Format XP numbers for display: 1.5M, 2.3K, 999"""
    if xp >= 1_000_000:
        return f"{xp / 1_000_000:.1f}M"
    if xp >= 1_000:
        return f"{xp / 1_000:.1f}K"
    return str(xp)


def get_xp_rewards() -> XPRewards:
    return XPRewards(
        lesson=settings.XP_PER_LESSON,
        correct_answer=settings.XP_PER_CORRECT_ANSWER,
        streak_bonus_per_day=settings.XP_STREAK_BONUS_PER_DAY,
    )
