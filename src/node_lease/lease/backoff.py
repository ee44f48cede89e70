"""Exponential backoff used while waiting for the lease to exist."""

from __future__ import annotations

from node_lease.core.config import BackoffConfig


class ExponentialBackoff:
    """
    Capped exponential delay sequence.

    The n-th call to ``next_delay`` (counting from zero) returns
    ``min(base_delay * exponential_base ** n, max_delay)``. There is no
    jitter: a single node retries against its own record, so the sequence
    stays non-decreasing and never exceeds the cap.

    Example:
        backoff = ExponentialBackoff(BackoffConfig(base_delay=0.2, max_delay=7.0))
        backoff.next_delay()  # 0.2
        backoff.next_delay()  # 0.4
    """

    def __init__(self, config: BackoffConfig | None = None):
        self.config = config or BackoffConfig()
        self._attempt = 0
        self._capped = False

    @property
    def attempt(self) -> int:
        """Number of delays handed out since the last reset."""
        return self._attempt

    def next_delay(self) -> float:
        cfg = self.config
        if self._capped:
            return cfg.max_delay
        delay = cfg.base_delay * (cfg.exponential_base**self._attempt)
        self._attempt += 1
        # The creation loop never gives up, so freeze the exponent at the cap
        # instead of letting float * 2**n overflow after enough failures.
        if delay >= cfg.max_delay:
            self._capped = True
            return cfg.max_delay
        return delay

    def reset(self) -> None:
        self._attempt = 0
        self._capped = False
