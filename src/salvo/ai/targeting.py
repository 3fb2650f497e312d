"""Target selection for the computer opponent.

Four tiers share one entry point, ``choose_ai_target``:

* easy: uniform random over unshot cells;
* medium: hunt-and-target, draining a FIFO queue of neighbours of earlier
  hits before falling back to random;
* hard: the same queue, but falling back to a density map of where the
  remaining ships could still lie (see ``hard_weights``);
* impossible: reads the true board and only shoots at ship cells.
"""

from __future__ import annotations

import random
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

import numpy as np
import numpy.typing as npt

from salvo.engine.board import Board, BoardSnapshot
from salvo.engine.ship import Coordinate

SPAN_BASE_WEIGHT = 1
SPAN_HIT_BONUS = 6
NEIGHBOUR_HIT_BONUS = 12

WeightGrid = npt.NDArray[np.int64]


class Difficulty(Enum):
    """Selectable computer strength."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    IMPOSSIBLE = "impossible"

    @property
    def uses_queue(self) -> bool:
        return self in (Difficulty.MEDIUM, Difficulty.HARD)

    @property
    def label(self) -> str:
        return self.value.title()


@dataclass
class AiMemory:
    """Follow-up targets queued after hits, served first-in first-out."""

    queue: deque[Coordinate] = field(default_factory=deque)

    def __len__(self) -> int:
        return len(self.queue)

    def __contains__(self, coord: object) -> bool:
        return coord in self.queue

    def clear(self) -> None:
        self.queue.clear()


def enqueue_targets(memory: AiMemory, board: Board, coords: Iterable[Coordinate]) -> None:
    """Queue every unshot coordinate not already waiting in ``memory``."""
    for coord in coords:
        if board.cell(coord).shot or coord in memory:
            continue
        memory.queue.append(coord)


def prune_queue(memory: AiMemory, board: Board) -> None:
    """Drop queued coordinates that have since been fired upon."""
    memory.queue = deque(coord for coord in memory.queue if not board.cell(coord).shot)


def hard_weights(snapshot: BoardSnapshot) -> WeightGrid:
    """Score every cell by how plausibly a remaining ship covers it.

    Shot cells score 0. Every unshot cell starts at 1; each legal span of a
    remaining ship (on the board, crossing no sunk cell and no miss) adds
    ``1 + 6 * unresolved hits in the span`` to its unshot cells; each
    unresolved hit adds 12 to its unshot orthogonal neighbours.
    """
    size = snapshot.size
    unshot = ~snapshot.shot
    hits = snapshot.unresolved_hits.astype(np.int64)
    blocked = snapshot.sunk | snapshot.misses
    weights = unshot.astype(np.int64) * SPAN_BASE_WEIGHT

    for length in snapshot.remaining_lengths:
        if length > size:
            continue
        for y in range(size):
            for x in range(size - length + 1):
                _add_span(weights, unshot, hits, blocked, np.s_[y, x:x + length])
        for y in range(size - length + 1):
            for x in range(size):
                _add_span(weights, unshot, hits, blocked, np.s_[y:y + length, x])

    for y, x in np.argwhere(snapshot.unresolved_hits):
        for ny, nx in ((y, x + 1), (y, x - 1), (y + 1, x), (y - 1, x)):
            if 0 <= nx < size and 0 <= ny < size and unshot[ny, nx]:
                weights[ny, nx] += NEIGHBOUR_HIT_BONUS

    return weights


def _add_span(
    weights: WeightGrid,
    unshot: npt.NDArray[np.bool_],
    hits: WeightGrid,
    blocked: npt.NDArray[np.bool_],
    span: tuple[int | slice, ...],
) -> None:
    if blocked[span].any():
        return
    bonus = SPAN_BASE_WEIGHT + SPAN_HIT_BONUS * int(hits[span].sum())
    weights[span] += unshot[span] * bonus


def best_weighted_targets(weights: WeightGrid, snapshot: BoardSnapshot) -> list[Coordinate]:
    """All unshot coordinates tied for the highest weight, row by row."""
    unshot = ~snapshot.shot
    if not unshot.any():
        return []
    peak = weights[unshot].max()
    return [Coordinate(int(x), int(y)) for y, x in np.argwhere(unshot & (weights == peak))]


def hard_weight_shot(board: Board, rng: random.Random) -> Coordinate | None:
    snapshot = board.snapshot()
    candidates = best_weighted_targets(hard_weights(snapshot), snapshot)
    if not candidates:
        return None
    return rng.choice(candidates)


def choose_ai_target(
    board: Board,
    difficulty: Difficulty,
    memory: AiMemory,
    rng: random.Random,
) -> Coordinate | None:
    """Pick the next cell to fire at on ``board``; ``None`` once every cell is shot."""
    unshot = board.unshot_coordinates()
    if not unshot:
        return None

    prune_queue(memory, board)

    if difficulty is Difficulty.IMPOSSIBLE:
        ship_coords = [coord for coord in unshot if board.cell(coord).occupied]
        return rng.choice(ship_coords or unshot)

    if difficulty.uses_queue and memory.queue:
        return memory.queue.popleft()

    if difficulty is Difficulty.HARD:
        weighted = hard_weight_shot(board, rng)
        if weighted is not None:
            return weighted

    return rng.choice(unshot)
