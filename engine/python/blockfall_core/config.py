"""Game configuration: board size and timing constants."""

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

from blockfall_core.rules import SpeedRules


@dataclass
class GameConfig:
    """Settings for one engine instance."""
    width: int = 10
    height: int = 20
    base_interval_ms: int = 500  # Gravity period at the start of a game
    interval_step_ms: int = 10  # Gravity speed-up per cleared row
    min_interval_ms: int = 100  # Gravity never gets faster than this
    fast_drop_interval_ms: int = 100  # Period while fast drop is held
    seed: Optional[int] = None

    def speed_rules(self) -> SpeedRules:
        return SpeedRules(
            base_interval_ms=self.base_interval_ms,
            step_ms=self.interval_step_ms,
            min_interval_ms=self.min_interval_ms,
        )

    @classmethod
    def from_env(
        cls, prefix: str = "BLOCKFALL_", environ: Optional[Mapping[str, str]] = None
    ) -> "GameConfig":
        """Build a config from environment variables.

        Each field maps to ``<prefix><FIELD_NAME>``, e.g. BLOCKFALL_WIDTH.
        Unset variables keep their defaults.

        Args:
            prefix: Variable name prefix
            environ: Mapping to read instead of os.environ

        Returns:
            New config
        """
        env = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            name = prefix + f.name.upper()
            raw = env.get(name)
            if raw is None or raw == "":
                continue
            try:
                values[f.name] = int(raw)
            except ValueError:
                raise ValueError(f"{name} must be an integer, got {raw!r}")
        return cls(**values)
