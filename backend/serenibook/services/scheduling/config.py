# backend/serenibook/services/scheduling/config.py
"""
Scheduling engine configuration.
"""

from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class SchedulingConfig:
    """
    Configuration for the scheduling engine.

    Attributes:
        default_horizon_months: Expansion horizon when a rule has neither
                                end_date nor end_after
        default_max_occurrences: Hard cap on created occurrences when a rule
                                 has no end_after
        max_walk_days: Upper bound on days walked by one expansion, whatever the rule
        min_group_participants: Smallest capacity accepted for a group class
        max_group_participants: Largest capacity accepted for a group class
        slot_step_minutes: Step between candidate start times in free-slot listings
    """
    default_horizon_months: int = 3
    default_max_occurrences: int = 52
    max_walk_days: int = 3660
    min_group_participants: int = 2
    max_group_participants: int = 50
    slot_step_minutes: int = 15

    def __post_init__(self):
        """Validate configuration."""
        if self.default_horizon_months < 1:
            raise ValueError(f"default_horizon_months must be >= 1, got {self.default_horizon_months}")
        if self.default_max_occurrences < 1:
            raise ValueError(f"default_max_occurrences must be >= 1, got {self.default_max_occurrences}")
        if self.max_walk_days < 1:
            raise ValueError(f"max_walk_days must be >= 1, got {self.max_walk_days}")
        if self.slot_step_minutes < 1:
            raise ValueError(f"slot_step_minutes must be >= 1, got {self.slot_step_minutes}")
        if not 1 <= self.min_group_participants <= self.max_group_participants:
            raise ValueError(
                "group participant bounds must satisfy 1 <= min <= max, "
                f"got {self.min_group_participants}..{self.max_group_participants}"
            )


@lru_cache
def get_scheduling_config() -> SchedulingConfig:
    """
    Get scheduling configuration (singleton).

    In the future, this can read per-professional overrides from the database.
    """
    return SchedulingConfig()
