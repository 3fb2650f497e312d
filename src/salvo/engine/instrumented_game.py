"""Game session with per-game telemetry hooks."""

from __future__ import annotations

import time
from typing import Any

from salvo.engine.board import ShotResult
from salvo.engine.game import GamePhase, GameSession, Side
from salvo.engine.ship import Coordinate
from salvo.telemetry import get_logger, get_tracer, record_game_distribution, record_game_metric


class InstrumentedGameSession(GameSession):
    """Wraps GameSession with a span per game plus shot and outcome metrics."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._logger = get_logger("salvo.engine")
        self._tracer = get_tracer("salvo.engine")
        self._game_span_cm = None
        self._game_span = None
        self._game_start_time: float | None = None
        self._shots: dict[Side, int] = {Side.PLAYER: 0, Side.COMPUTER: 0}

    def new_game(self, manual_placement: bool = True) -> None:
        with self._tracer.start_as_current_span("salvo.engine.new_game") as span:
            super().new_game(manual_placement)
            self._start_game_span()
            span.set_attribute("generation", self.generation)
            span.set_attribute("difficulty", self.difficulty.value)
            record_game_metric(
                "salvo_game_started_total",
                1,
                {"difficulty": self.difficulty.value, "manual_placement": manual_placement},
            )
            self._logger.info(
                "New game generation=%d difficulty=%s", self.generation, self.difficulty.value
            )

    def player_fire(self, target: Coordinate) -> ShotResult | None:
        with self._tracer.start_as_current_span("salvo.engine.player_fire") as span:
            span.set_attribute("game.generation", self.generation)
            span.set_attribute("coord", target.label)
            result = super().player_fire(target)
            self._record_shot(Side.PLAYER, result, span)
            return result

    def _resolve_computer_turn(self, generation: int) -> None:
        start = time.perf_counter()
        with self._tracer.start_as_current_span("salvo.engine.computer_turn") as span:
            span.set_attribute("game.generation", generation)
            span.set_attribute("difficulty", self.difficulty.value)
            shots_before = self._count_shots()
            super()._resolve_computer_turn(generation)
            fired = self._count_shots() > shots_before
            span.set_attribute("fired", fired)
            if fired:
                self._shots[Side.COMPUTER] += 1
                record_game_metric(
                    "salvo_shots_total", 1, {"side": Side.COMPUTER.value}
                )
            record_game_distribution(
                "salvo_computer_turn_latency_ms",
                (time.perf_counter() - start) * 1000,
                {"difficulty": self.difficulty.value},
            )
            self._maybe_finish_game()

    def _record_shot(self, side: Side, result: ShotResult | None, span) -> None:
        if result is None:
            span.set_attribute("ignored", True)
            return
        if not result.ok:
            record_game_metric(
                "salvo_rejected_shots_total",
                1,
                {"side": side.value, "reason": "repeated" if result.repeated else "invalid"},
            )
            span.set_attribute("rejected", True)
            return

        self._shots[side] += 1
        outcome = result.outcome.value if result.outcome else "unknown"
        span.set_attribute("shot_outcome", outcome)
        record_game_metric("salvo_shots_total", 1, {"side": side.value})
        record_game_metric(
            "salvo_shots_by_result_total",
            1,
            {"side": side.value, "result": outcome},
        )
        self._maybe_finish_game()

    def _count_shots(self) -> int:
        return int(self.player_board.snapshot().shot.sum())

    def _maybe_finish_game(self) -> None:
        if self.phase is GamePhase.GAME_OVER and self.winner and self._game_span_cm is not None:
            self._finish_game()

    def _start_game_span(self) -> None:
        self._close_game_span()
        self._game_start_time = time.perf_counter()
        self._shots = {Side.PLAYER: 0, Side.COMPUTER: 0}
        self._game_span_cm = self._tracer.start_as_current_span("salvo.engine.game")
        self._game_span = self._game_span_cm.__enter__()
        self._game_span.set_attribute("game.generation", self.generation)

    def _finish_game(self) -> None:
        duration = (time.perf_counter() - self._game_start_time) if self._game_start_time else 0.0
        winner = self.winner.value if self.winner else "unknown"
        turns = sum(self._shots.values())

        record_game_metric(
            "salvo_game_completed_total",
            1,
            {"winner": winner, "difficulty": self.difficulty.value},
        )
        record_game_distribution(
            "salvo_game_duration_seconds", duration, {"winner": winner}
        )
        record_game_distribution(
            "salvo_game_computer_shots",
            self._shots[Side.COMPUTER],
            {"difficulty": self.difficulty.value},
        )

        with self._tracer.start_as_current_span("salvo.engine.game_complete") as span:
            span.set_attribute("game.generation", self.generation)
            span.set_attribute("winner", winner)
            span.set_attribute("turns", turns)
            span.set_attribute("duration_ms", duration * 1000)

        if self._game_span is not None:
            self._game_span.set_attribute("winner", winner)
            self._game_span.set_attribute("turns", turns)

        self._logger.info(
            "Game finished. Winner=%s turns=%d duration_s=%.3f", winner, turns, duration
        )
        self._close_game_span()

    def _close_game_span(self) -> None:
        if self._game_span_cm is not None:
            self._game_span_cm.__exit__(None, None, None)
            self._game_span_cm = None
            self._game_span = None
