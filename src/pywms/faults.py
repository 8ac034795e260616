"""Failure injection.

Every state-advancing effect consults a :class:`FailureInjector` first. A
check fails when forced failure mode is on, or when a uniform draw falls
under the configured rate. Checks are independent trials with no memory.
"""

from __future__ import annotations

import logging
import random

from pywms.exceptions import WmsConfigError

_logger = logging.getLogger(__name__)


class FailureInjector:
    """Forced-failure toggle plus a random failure rate."""

    def __init__(
        self,
        *,
        rate: float = 0.0,
        forced: bool = False,
        rng: random.Random | None = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._rate = 0.0
        self._forced = forced
        self.rate = rate
        self.checks = 0
        self.failures = 0

    @property
    def forced(self) -> bool:
        return self._forced

    @forced.setter
    def forced(self, value: bool) -> None:
        if value != self._forced:
            _logger.info("Forced failure mode %s", "enabled" if value else "disabled")
        self._forced = bool(value)

    @property
    def rate(self) -> float:
        return self._rate

    @rate.setter
    def rate(self, value: float) -> None:
        rate = float(value)
        if not 0.0 <= rate <= 1.0:
            raise WmsConfigError(f"failure rate must be between 0 and 1, got {rate}")
        self._rate = rate

    def should_fail(self, operation: str = "") -> bool:
        """Run one trial for *operation* (used only for logging)."""
        self.checks += 1
        failed = self._forced or (self._rate > 0.0 and self._rng.random() < self._rate)
        if failed:
            self.failures += 1
            _logger.info("Injecting failure into %s", operation or "operation")
        return failed
