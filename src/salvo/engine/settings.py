"""Engine tuning knobs loaded from the environment."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict

from pydantic import BaseModel, Field

from salvo.ai.targeting import Difficulty

DEFAULT_PLACEMENT_ATTEMPTS = 500
DEFAULT_AI_DELAY_SECONDS = 0.6


class EngineSettings(BaseModel):
    """Runtime settings for a game session.

    ``placement_attempts`` bounds the random draws per ship when placing a
    fleet. It is a tuning knob, not a guarantee that placement succeeds.
    """

    placement_attempts: int = Field(default=DEFAULT_PLACEMENT_ATTEMPTS, ge=1)
    ai_delay_seconds: float = Field(default=DEFAULT_AI_DELAY_SECONDS, ge=0.0)
    difficulty: Difficulty = Difficulty.MEDIUM

    @classmethod
    def from_env(cls, **overrides: Any) -> "EngineSettings":
        """Construct settings from `SALVO_*` env vars; overrides win."""

        data: Dict[str, Any] = {}
        env_fields = {
            "placement_attempts": "SALVO_PLACEMENT_ATTEMPTS",
            "ai_delay_seconds": "SALVO_AI_DELAY",
            "difficulty": "SALVO_DIFFICULTY",
        }
        for field, env_name in env_fields.items():
            value = os.getenv(env_name)
            if value is not None and value.strip():
                data[field] = value.strip().lower()
        data.update(overrides)
        return cls(**data)


@lru_cache(maxsize=1)
def load_settings() -> EngineSettings:
    """Load and cache engine settings from the environment."""

    return EngineSettings.from_env()
