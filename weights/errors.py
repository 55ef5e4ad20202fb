"""
Error kinds raised by the weight engine.

Every one of them is fatal to the current epoch/token computation: the run
either completes with a fully validated weight set or aborts before any
output is produced.
"""
from __future__ import annotations

from typing import Any, Optional


class WeightsError(Exception):
    """Parent of every engine error. Carries the values that triggered it."""

    def __init__(
        self,
        message: str,
        *,
        expected: Optional[Any] = None,
        actual: Optional[Any] = None,
    ) -> None:
        self.message = message
        self.expected = expected
        self.actual = actual
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.expected is None and self.actual is None:
            return self.message
        return f"{self.message}, expected {self.expected} but got {self.actual}"


class ConfigError(WeightsError):
    """Invalid epoch / cycle / token selection."""


class DataError(WeightsError):
    """Expected field missing from a fetched snapshot, or the fetch itself failed."""


class ConservationError(WeightsError):
    """Share or balance totals fail reconciliation beyond tolerance."""


class NormalizationError(WeightsError):
    """Final weight sum is not exactly one unit."""
