"""
Running counters shown on the admin validation screen.

A redemption bumps the counters straight away (`apply_redemption`) so the
screen stays responsive; the next authoritative read (`reconcile`) always
overwrites whatever the local deltas produced.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from core.tokens import TokenStats


@dataclass
class DashboardCounters:
    total: int = 0
    used: int = 0
    unused: int = 0
    by_meal: dict[str, int] = field(default_factory=dict)
    # redeemed per meal type since the last reconcile
    pending: dict[str, int] = field(default_factory=dict)

    def apply_redemption(self, meal_type: str) -> None:
        self.used += 1
        self.unused = max(self.unused - 1, 0)
        self.pending[meal_type] = self.pending.get(meal_type, 0) + 1

    def reconcile(self, stats: TokenStats, breakdown: dict[str, int]) -> None:
        self.total = stats.total
        self.used = stats.used
        self.unused = stats.unused
        self.by_meal = dict(breakdown)
        self.pending.clear()

    def as_dict(self) -> dict[str, object]:
        return {
            "total": self.total,
            "used": self.used,
            "unused": self.unused,
            "by_meal": dict(self.by_meal),
        }
