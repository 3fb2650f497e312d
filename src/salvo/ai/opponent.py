"""Computer opponent wrapping the targeting tiers with memory and telemetry."""

from __future__ import annotations

import logging
import random
import time

from salvo.engine.board import Board, ShotOutcome, ShotResult
from salvo.engine.ship import Coordinate
from salvo.telemetry import get_tracer, record_game_distribution, record_game_metric

from .targeting import AiMemory, Difficulty, choose_ai_target, enqueue_targets, prune_queue

logger = logging.getLogger(__name__)


class ComputerOpponent:
    """Owns the difficulty setting, follow-up queue and RNG of the computer side."""

    def __init__(
        self,
        difficulty: Difficulty = Difficulty.MEDIUM,
        rng: random.Random | None = None,
    ) -> None:
        self.difficulty = difficulty
        self.memory = AiMemory()
        self.rng = rng or random.Random()
        self._tracer = get_tracer("salvo.ai")

    def reset(self) -> None:
        self.memory.clear()

    def choose_target(self, board: Board) -> Coordinate | None:
        start = time.perf_counter()
        with self._tracer.start_as_current_span("salvo.ai.choose_target") as span:
            queued = len(self.memory)
            target = choose_ai_target(board, self.difficulty, self.memory, self.rng)
            duration_ms = (time.perf_counter() - start) * 1000

            span.set_attribute("difficulty", self.difficulty.value)
            span.set_attribute("queue_length", queued)
            attrs = {"difficulty": self.difficulty.value}
            record_game_metric("salvo_ai_targets_total", 1, attrs)
            record_game_distribution("salvo_ai_target_latency_ms", duration_ms, attrs)
            if target is not None:
                span.set_attribute("target", target.label)
            logger.debug(
                "ai_target_chosen",
                extra={
                    "difficulty": self.difficulty.value,
                    "target": target.label if target else None,
                    "queue_length": queued,
                },
            )
            return target

    def observe(self, board: Board, target: Coordinate, result: ShotResult) -> None:
        """Update the follow-up queue after firing at ``target``."""
        if result.outcome is ShotOutcome.HIT:
            enqueue_targets(self.memory, board, board.neighbours(target))
        elif result.outcome is ShotOutcome.SUNK:
            prune_queue(self.memory, board)
