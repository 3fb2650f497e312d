"""Measure how quickly each computer tier clears a randomly placed fleet."""

from __future__ import annotations

import argparse
import json
import logging
import random
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Sequence

import numpy as np
from opentelemetry.instrumentation.logging import LoggingInstrumentor

from salvo.engine.board import Board
from salvo.engine.placement import place_fleet_random
from salvo.telemetry import (
    configure_console_logging,
    get_meter,
    get_tracer,
    init_telemetry,
    shutdown_telemetry,
)

from .opponent import ComputerOpponent
from .targeting import Difficulty

logger = logging.getLogger(__name__)


@dataclass
class EvaluationConfig:
    games_per_difficulty: int = 50
    difficulties: tuple[Difficulty, ...] = tuple(Difficulty)
    seed: int | None = 42
    placement_attempts: int = 500
    output_path: str | None = None


@dataclass
class DifficultySummary:
    difficulty: str
    games: int
    mean_shots: float
    median_shots: float
    min_shots: int
    max_shots: int
    shots: list[int] = field(default_factory=list)


class DifficultyEvaluator:
    """Plays the computer against fresh random fleets and tallies shots to win."""

    def __init__(self, config: EvaluationConfig) -> None:
        self.config = config
        self.rng = random.Random(config.seed)
        self.tracer = get_tracer("salvo.ai.evaluation")
        self.meter = get_meter("salvo.ai.evaluation")
        self.shots_hist = self.meter.create_histogram(
            "salvo_evaluation_shots_to_win",
            unit="1",
            description="Shots the computer needed to sink a whole fleet",
        )

    def play_game(self, difficulty: Difficulty) -> int:
        """Run one game against a random fleet and return the shots fired."""
        board = Board(owner="evaluation")
        place_fleet_random(board, self.rng, self.config.placement_attempts)
        opponent = ComputerOpponent(difficulty, rng=self.rng)
        shots = 0
        while not board.all_ships_sunk():
            target = opponent.choose_target(board)
            if target is None:
                raise RuntimeError("Ran out of targets before the fleet was sunk.")
            result = board.fire(target)
            if not result.ok:
                continue
            shots += 1
            opponent.observe(board, target, result)
        return shots

    def evaluate(self, difficulty: Difficulty) -> DifficultySummary:
        with self.tracer.start_as_current_span("evaluate_difficulty") as span:
            span.set_attribute("difficulty", difficulty.value)
            shots = [self.play_game(difficulty) for _ in range(self.config.games_per_difficulty)]
            for count in shots:
                self.shots_hist.record(count, attributes={"difficulty": difficulty.value})
            samples = np.asarray(shots, dtype=np.float64)
            summary = DifficultySummary(
                difficulty=difficulty.value,
                games=len(shots),
                mean_shots=float(samples.mean()),
                median_shots=float(np.median(samples)),
                min_shots=int(samples.min()),
                max_shots=int(samples.max()),
                shots=shots,
            )
            span.set_attribute("mean_shots", summary.mean_shots)
            logger.info(
                "difficulty_evaluated",
                extra={
                    "difficulty": difficulty.value,
                    "games": summary.games,
                    "mean_shots": summary.mean_shots,
                },
            )
            return summary

    def run(self) -> list[DifficultySummary]:
        if self.config.games_per_difficulty < 1:
            raise ValueError("games_per_difficulty must be at least 1")
        summaries = [self.evaluate(difficulty) for difficulty in self.config.difficulties]
        if self.config.output_path:
            self.save(summaries, Path(self.config.output_path))
        return summaries

    def save(self, summaries: list[DifficultySummary], path: Path) -> None:
        config: dict[str, Any] = asdict(self.config)
        config["difficulties"] = [difficulty.value for difficulty in self.config.difficulties]
        payload = {
            "config": config,
            "results": [asdict(summary) for summary in summaries],
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2))


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Benchmark the Salvo computer opponent")
    parser.add_argument("--games", type=int, default=50, help="Games per difficulty.")
    parser.add_argument(
        "--difficulty",
        action="append",
        choices=[difficulty.value for difficulty in Difficulty],
        help="Tier to evaluate; repeat for several. Defaults to all tiers.",
    )
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Optional path for a JSON summary.",
    )
    args = parser.parse_args(argv)

    configure_console_logging()
    init_telemetry()
    LoggingInstrumentor().instrument()

    difficulties = (
        tuple(Difficulty(value) for value in args.difficulty)
        if args.difficulty
        else tuple(Difficulty)
    )
    config = EvaluationConfig(
        games_per_difficulty=args.games,
        difficulties=difficulties,
        seed=args.seed,
        output_path=args.output,
    )
    try:
        summaries = DifficultyEvaluator(config).run()
    finally:
        shutdown_telemetry()
    for summary in summaries:
        print(
            f"[{summary.difficulty:>10}] games={summary.games} "
            f"mean={summary.mean_shots:.1f} median={summary.median_shots:.1f} "
            f"best={summary.min_shots} worst={summary.max_shots}"
        )


if __name__ == "__main__":
    main()
