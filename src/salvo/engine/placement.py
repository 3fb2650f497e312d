"""Random and manual fleet placement."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from salvo.telemetry import get_tracer

from .board import Board
from .settings import DEFAULT_PLACEMENT_ATTEMPTS
from .ship import (
    BOARD_SIZE,
    Coordinate,
    Orientation,
    PlacementSpec,
    fleet_specs,
    ship_cells,
)

logger = logging.getLogger(__name__)
tracer = get_tracer("salvo.engine.placement")


class PlacementError(RuntimeError):
    """Raised when a ship could not be placed within the attempt budget."""


@dataclass(frozen=True)
class Placement:
    """A committed ship position."""

    spec: PlacementSpec
    cells: tuple[Coordinate, ...]


def board_from_placements(placements: list[Placement], owner: str = "player") -> Board:
    """Build a fresh board holding exactly ``placements``, in order."""
    board = Board(owner=owner)
    for placement in placements:
        board.place_ship(
            placement.spec.label,
            placement.spec.length,
            placement.cells,
            placement.spec.name,
        )
    return board


def random_placement(
    board: Board,
    spec: PlacementSpec,
    rng: random.Random,
    max_attempts: int = DEFAULT_PLACEMENT_ATTEMPTS,
) -> Placement:
    """Find a free random position for ``spec`` on ``board`` and commit it."""
    for attempt in range(1, max_attempts + 1):
        orientation = rng.choice(list(Orientation))
        if orientation is Orientation.HORIZONTAL:
            max_x, max_y = BOARD_SIZE - spec.length, BOARD_SIZE - 1
        else:
            max_x, max_y = BOARD_SIZE - 1, BOARD_SIZE - spec.length
        start = Coordinate(rng.randint(0, max_x), rng.randint(0, max_y))
        cells = ship_cells(start, spec.length, orientation)
        if board.can_place_ship(cells):
            board.place_ship(spec.label, spec.length, cells, spec.name)
            logger.debug(
                "random_ship_placed",
                extra={"ship_label": spec.label, "attempts": attempt, "owner": board.owner},
            )
            return Placement(spec, tuple(cells))

    logger.error(
        "random_placement_exhausted",
        extra={"ship_label": spec.label, "attempts": max_attempts, "owner": board.owner},
    )
    raise PlacementError("Could not place fleet. Please restart.")


def place_fleet_random(
    board: Board,
    rng: random.Random,
    max_attempts: int = DEFAULT_PLACEMENT_ATTEMPTS,
) -> list[Placement]:
    """Randomly place one ship per manifest instance on ``board``."""
    with tracer.start_as_current_span("placement.place_fleet_random") as span:
        span.set_attribute("board.owner", board.owner)
        placements = [random_placement(board, spec, rng, max_attempts) for spec in fleet_specs()]
        span.set_attribute("ships", len(placements))
        return placements


@dataclass
class FleetPlanner:
    """Tracks the human player's fleet while it is being placed by hand.

    The board is always rebuilt from the placement list, so undo and clear
    are list truncations.
    """

    max_attempts: int = DEFAULT_PLACEMENT_ATTEMPTS
    queue: list[PlacementSpec] = field(default_factory=fleet_specs)
    placements: list[Placement] = field(default_factory=list)
    orientation: Orientation = Orientation.HORIZONTAL
    board: Board = field(default_factory=lambda: Board(owner="player"))

    @property
    def next_spec(self) -> PlacementSpec | None:
        if len(self.placements) >= len(self.queue):
            return None
        return self.queue[len(self.placements)]

    @property
    def is_complete(self) -> bool:
        return len(self.placements) == len(self.queue)

    def rotate(self) -> Orientation:
        self.orientation = self.orientation.toggled()
        return self.orientation

    def place(self, origin: Coordinate) -> Placement | None:
        """Place the next queued ship at ``origin``; ``None`` if it does not fit."""
        spec = self.next_spec
        if spec is None:
            return None
        cells = ship_cells(origin, spec.length, self.orientation)
        if not self.board.can_place_ship(cells):
            logger.info(
                "manual_placement_rejected",
                extra={"ship_label": spec.label, "x": origin.x, "y": origin.y},
            )
            return None
        placement = Placement(spec, tuple(cells))
        self.placements.append(placement)
        self.board = board_from_placements(self.placements)
        return placement

    def auto_place_remaining(self, rng: random.Random) -> list[Placement]:
        """Randomly place every ship still in the queue.

        On ``PlacementError`` the committed placements are left untouched.
        """
        board = board_from_placements(self.placements)
        added = [
            random_placement(board, spec, rng, self.max_attempts)
            for spec in self.queue[len(self.placements):]
        ]
        self.placements.extend(added)
        self.board = board
        return added

    def undo(self) -> Placement | None:
        if not self.placements:
            return None
        removed = self.placements.pop()
        self.board = board_from_placements(self.placements)
        return removed

    def clear(self) -> None:
        self.placements.clear()
        self.board = Board(owner="player")
