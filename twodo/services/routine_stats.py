"""
Routine statistics: totals, completion rate and current streak.

Streak policy, walking back from today over occurrences dated today or
earlier (newest first):
- completed: counts, keep walking
- skipped (not completed): transparent, keep walking
- neither: the streak is broken, stop
"""

import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable


@dataclass(frozen=True)
class RoutineStats:
    total: int
    completed: int
    skipped: int
    completion_rate: int
    current_streak: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "completed": self.completed,
            "skipped": self.skipped,
            "completionRate": self.completion_rate,
            "currentStreak": self.current_streak,
        }


def completion_rate(completed: int, total: int) -> int:
    """Percentage of completed occurrences, rounded half up; 0 when empty."""
    if total <= 0:
        return 0
    return math.floor(100 * completed / total + 0.5)


def compute_streak(occurrences: Iterable, today: date) -> int:
    """Count skip-transparent consecutive completions back from today."""
    past = sorted(
        (occ for occ in occurrences if occ.scheduled_date <= today),
        key=lambda occ: occ.scheduled_date,
        reverse=True,
    )

    streak = 0
    for occ in past:
        if occ.completed_at is not None:
            streak += 1
        elif not occ.skipped:
            break
    return streak


def compute_stats(occurrences: Iterable, today: date) -> RoutineStats:
    """Derive RoutineStats from a routine's full occurrence history."""
    occurrences = list(occurrences)
    total = len(occurrences)
    completed = sum(1 for occ in occurrences if occ.completed_at is not None)
    skipped = sum(1 for occ in occurrences if occ.skipped)

    return RoutineStats(
        total=total,
        completed=completed,
        skipped=skipped,
        completion_rate=completion_rate(completed, total),
        current_streak=compute_streak(occurrences, today),
    )
