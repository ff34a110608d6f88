# src/nullmodel/latency_simulator.py
"""Latency simulation for the nullmodel server.

The LatencySimulator produces the two delays a streaming client observes:
time to first token (the model "thinking") and the gap between tokens.
"""

import random as random_module

from nullmodel.config import LatencyConfig

# Floors keep jitter from producing zero or negative waits.
FIRST_TOKEN_FLOOR_MS = 50
PER_TOKEN_FLOOR_MS = 5


class LatencySimulator:
    """Computes jittered delays from configured bases.

    Stateless apart from the random source, so one instance can be shared by
    every request.

    Usage:
        simulator = LatencySimulator(LatencyConfig(per_token_ms=30, variance=0.3))
        await asyncio.sleep(simulator.per_token_delay() / 1000.0)
    """

    def __init__(
        self,
        config: LatencyConfig,
        *,
        rng: random_module.Random | None = None,
    ) -> None:
        """Initialize the latency simulator.

        Args:
            config: Latency simulation configuration
            rng: Random instance for testing (default: creates new Random instance).
                 Inject a seeded random.Random() for deterministic testing.
        """
        self._config = config
        self._rng = rng if rng is not None else random_module.Random()

    @property
    def config(self) -> LatencyConfig:
        return self._config

    def _jittered(self, base_ms: float, floor_ms: int) -> int:
        """Compute ``base * (1 + uniform(-variance, +variance))``, rounded and floored."""
        variance = self._config.variance
        jitter = 1 + self._rng.uniform(-variance, variance)
        return max(floor_ms, round(base_ms * jitter))

    def first_token_delay(self) -> int:
        """Delay in milliseconds before the first streamed unit."""
        return self._jittered(self._config.first_token_ms, FIRST_TOKEN_FLOOR_MS)

    def per_token_delay(self) -> int:
        """Delay in milliseconds before each subsequent streamed unit."""
        return self._jittered(self._config.per_token_ms, PER_TOKEN_FLOOR_MS)

    def slowed(self, multiplier: float) -> "LatencySimulator":
        """Return a simulator with both bases multiplied, sharing this random source."""
        return LatencySimulator(self._config.scaled(multiplier), rng=self._rng)
