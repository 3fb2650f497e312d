"""Single-side board management for the Salvo engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

import numpy as np
import numpy.typing as npt

from salvo.telemetry import get_meter, get_tracer

from .ship import BOARD_SIZE, Coordinate, Ship, in_bounds

logger = logging.getLogger(__name__)
tracer = get_tracer("salvo.engine.board")
meter = get_meter("salvo.engine.board")

PLACEMENT_COUNTER = meter.create_counter(
    "salvo_engine_ship_placements",
    unit="1",
    description="Ships committed to a board",
)

SHOT_COUNTER = meter.create_counter(
    "salvo_engine_shots",
    unit="1",
    description="Shots received by a board",
)

BoolGrid = npt.NDArray[np.bool_]


@dataclass
class Cell:
    """One grid square; ``ship_id`` indexes ``Board.ships`` or is ``None`` for water."""

    ship_id: int | None = None
    shot: bool = False
    sunk: bool = False

    @property
    def occupied(self) -> bool:
        return self.ship_id is not None


class ShotOutcome(Enum):
    """Classification of an accepted shot."""

    MISS = "miss"
    HIT = "hit"
    SUNK = "sunk"


@dataclass(frozen=True)
class ShotResult:
    """Outcome of ``Board.fire``.

    Rejected shots have ``ok`` false and no outcome; ``repeated`` tells an
    already-shot cell apart from an off-board coordinate. ``coords`` lists
    every cell the UI should refresh: the shot cell, or the whole ship when
    it sinks.
    """

    ok: bool
    outcome: ShotOutcome | None = None
    coords: tuple[Coordinate, ...] = ()
    ship_name: str | None = None
    repeated: bool = False

    @classmethod
    def invalid(cls) -> ShotResult:
        return cls(ok=False)

    @classmethod
    def repeat(cls) -> ShotResult:
        return cls(ok=False, repeated=True)


@dataclass(frozen=True)
class BoardSnapshot:
    """Read-only view of a board, grids indexed ``[y, x]``."""

    shot: BoolGrid
    occupied: BoolGrid
    sunk: BoolGrid
    remaining_lengths: tuple[int, ...]

    @property
    def size(self) -> int:
        return int(self.shot.shape[0])

    @property
    def unresolved_hits(self) -> BoolGrid:
        """Cells hit on a ship that is still afloat."""
        return self.shot & self.occupied & ~self.sunk

    @property
    def misses(self) -> BoolGrid:
        return self.shot & ~self.occupied


def _frozen(grid: BoolGrid) -> BoolGrid:
    grid.setflags(write=False)
    return grid


def _empty_grid() -> list[list[Cell]]:
    return [[Cell() for _ in range(BOARD_SIZE)] for _ in range(BOARD_SIZE)]


@dataclass
class Board:
    """One side's 10x10 grid and the fleet it owns."""

    cells: list[list[Cell]] = field(default_factory=_empty_grid)
    ships: list[Ship] = field(default_factory=list)
    owner: str = "unknown"

    @property
    def size(self) -> int:
        return BOARD_SIZE

    def in_bounds(self, coord: Coordinate) -> bool:
        return in_bounds(coord.x, coord.y)

    def cell(self, coord: Coordinate) -> Cell:
        return self.cells[coord.y][coord.x]

    def ship_at(self, coord: Coordinate) -> Ship | None:
        ship_id = self.cell(coord).ship_id
        return None if ship_id is None else self.ships[ship_id]

    def can_place_ship(self, cells: Iterable[Coordinate]) -> bool:
        """True when every cell is on the board and not taken by another ship."""
        for coord in cells:
            if not self.in_bounds(coord):
                return False
            if self.cell(coord).occupied:
                return False
        return True

    def place_ship(
        self,
        label: str,
        length: int,
        cells: Sequence[Coordinate],
        base_name: str | None = None,
    ) -> Ship:
        """Register a ship on ``cells``.

        No validation happens here: callers must check ``can_place_ship``
        first or the one-ship-per-cell invariant breaks.
        """
        ship = Ship(
            id=len(self.ships),
            label=label,
            base_name=base_name or label,
            length=length,
            cells=tuple(cells),
        )
        self.ships.append(ship)
        for coord in ship.cells:
            self.cell(coord).ship_id = ship.id
        PLACEMENT_COUNTER.add(1, attributes={"owner": self.owner})
        logger.debug(
            "ship_placed",
            extra={
                "owner": self.owner,
                "ship_label": label,
                "length": length,
                "x": ship.cells[0].x if ship.cells else None,
                "y": ship.cells[0].y if ship.cells else None,
            },
        )
        return ship

    def fire(self, coord: Coordinate) -> ShotResult:
        """Resolve a shot at ``coord``, mutating cell and ship state."""
        with tracer.start_as_current_span("board.fire") as span:
            span.set_attribute("shot.x", coord.x)
            span.set_attribute("shot.y", coord.y)
            span.set_attribute("board.owner", self.owner)
            if not self.in_bounds(coord):
                logger.warning(
                    "shot_out_of_bounds",
                    extra={"x": coord.x, "y": coord.y, "owner": self.owner},
                )
                span.set_attribute("shot.outcome", "invalid")
                return ShotResult.invalid()

            cell = self.cell(coord)
            if cell.shot:
                logger.info(
                    "shot_repeated",
                    extra={"x": coord.x, "y": coord.y, "owner": self.owner},
                )
                span.set_attribute("shot.outcome", "repeated")
                return ShotResult.repeat()

            cell.shot = True
            outcome = ShotOutcome.MISS
            coords: tuple[Coordinate, ...] = (coord,)
            ship_name: str | None = None
            if cell.ship_id is not None:
                ship = self.ships[cell.ship_id]
                ship_name = ship.base_name
                outcome = ShotOutcome.HIT
                if ship.register_hit():
                    for owned in ship.cells:
                        self.cell(owned).sunk = True
                    outcome = ShotOutcome.SUNK
                    coords = ship.cells

            span.set_attribute("shot.outcome", outcome.value)
            SHOT_COUNTER.add(1, attributes={"outcome": outcome.value, "owner": self.owner})
            logger.info(
                "shot_resolved",
                extra={
                    "x": coord.x,
                    "y": coord.y,
                    "outcome": outcome.value,
                    "ship_name": ship_name,
                    "owner": self.owner,
                },
            )
            return ShotResult(ok=True, outcome=outcome, coords=coords, ship_name=ship_name)

    def all_ships_sunk(self) -> bool:
        """Check whether this side has any surviving ships."""
        return all(ship.sunk for ship in self.ships)

    def coordinates(self) -> list[Coordinate]:
        """Every coordinate on the board, row by row."""
        return [Coordinate(x, y) for y in range(self.size) for x in range(self.size)]

    def unshot_coordinates(self) -> list[Coordinate]:
        return [coord for coord in self.coordinates() if not self.cell(coord).shot]

    def unresolved_hits(self) -> list[Coordinate]:
        """Cells hit on a ship that has not gone down yet."""
        hits: list[Coordinate] = []
        for coord in self.coordinates():
            cell = self.cell(coord)
            if cell.shot and cell.occupied and not cell.sunk:
                hits.append(coord)
        return hits

    def neighbours(self, coord: Coordinate) -> list[Coordinate]:
        """In-bounds orthogonal neighbours, ordered +x, -x, +y, -y."""
        candidates = [
            Coordinate(coord.x + 1, coord.y),
            Coordinate(coord.x - 1, coord.y),
            Coordinate(coord.x, coord.y + 1),
            Coordinate(coord.x, coord.y - 1),
        ]
        return [candidate for candidate in candidates if self.in_bounds(candidate)]

    def snapshot(self) -> BoardSnapshot:
        shot = np.zeros((self.size, self.size), dtype=bool)
        occupied = np.zeros_like(shot)
        sunk = np.zeros_like(shot)
        for y, row in enumerate(self.cells):
            for x, cell in enumerate(row):
                shot[y, x] = cell.shot
                occupied[y, x] = cell.occupied
                sunk[y, x] = cell.sunk
        return BoardSnapshot(
            shot=_frozen(shot),
            occupied=_frozen(occupied),
            sunk=_frozen(sunk),
            remaining_lengths=tuple(ship.length for ship in self.ships if not ship.sunk),
        )


def create_board(owner: str = "unknown") -> Board:
    """Return an empty board with no ships."""
    return Board(owner=owner)
