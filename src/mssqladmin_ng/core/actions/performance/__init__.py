"""
Performance-counter collector set actions.
"""

from .collectorsets import (
    CollectorSets,
    CollectorSetCounters,
    RemoveCounter,
    StartCollectorSet,
    StopCollectorSet,
)

__all__ = [
    "CollectorSets",
    "CollectorSetCounters",
    "RemoveCounter",
    "StartCollectorSet",
    "StopCollectorSet",
]
