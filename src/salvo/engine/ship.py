"""Ship, coordinate and fleet domain model for the Salvo engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

BOARD_SIZE = 10
ROW_LABELS = "ABCDEFGHIJ"


@dataclass(frozen=True)
class Coordinate:
    """Immutable board coordinate; ``x`` is the column, ``y`` the row."""

    x: int
    y: int

    @property
    def label(self) -> str:
        """Human-readable label, row letter then column number (``C5``)."""
        return f"{chr(ord('A') + self.y)}{self.x + 1}"

    @classmethod
    def parse(cls, text: str) -> Coordinate:
        """Parse ``"C5"`` style labels or ``"x y"`` pairs."""
        cleaned = text.strip().upper()
        if not cleaned:
            raise ValueError("Empty coordinate.")
        if cleaned[0].isalpha():
            if cleaned[0] not in ROW_LABELS:
                raise ValueError("Row must be between A and J.")
            y = ROW_LABELS.index(cleaned[0])
            try:
                x = int(cleaned[1:]) - 1
            except ValueError as exc:
                raise ValueError("Column must be a number between 1 and 10.") from exc
        else:
            parts = cleaned.split()
            if len(parts) != 2:
                raise ValueError("Use formats like C5 or '4 2'.")
            try:
                x, y = map(int, parts)
            except ValueError as exc:
                raise ValueError("Coordinates must be whole numbers.") from exc
        if not in_bounds(x, y):
            raise ValueError("Coordinates must be within the 10x10 board.")
        return cls(x, y)

    def __str__(self) -> str:
        return self.label


def in_bounds(x: int, y: int) -> bool:
    """Check whether ``(x, y)`` lies on the fixed 10x10 grid."""
    return 0 <= x < BOARD_SIZE and 0 <= y < BOARD_SIZE


class Orientation(Enum):
    """Allowed ship orientations."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    def toggled(self) -> Orientation:
        if self is Orientation.HORIZONTAL:
            return Orientation.VERTICAL
        return Orientation.HORIZONTAL


def ship_cells(start: Coordinate, length: int, orientation: Orientation) -> list[Coordinate]:
    """Return ``length`` contiguous coordinates from ``start``.

    Horizontal ships extend along +x, vertical ones along +y. Bounds are not
    checked; pass the result to ``Board.can_place_ship`` first.
    """
    if orientation is Orientation.HORIZONTAL:
        return [Coordinate(start.x + offset, start.y) for offset in range(length)]
    return [Coordinate(start.x, start.y + offset) for offset in range(length)]


@dataclass(frozen=True)
class FleetEntry:
    """One line of the fleet manifest."""

    name: str
    length: int
    count: int = 1


FLEET: tuple[FleetEntry, ...] = (
    FleetEntry("Carrier", 5),
    FleetEntry("Destroyer", 4),
    FleetEntry("Submarine", 3, count=2),
    FleetEntry("Patrol", 2),
)


@dataclass(frozen=True)
class PlacementSpec:
    """A single ship instance waiting to be placed."""

    name: str
    label: str
    length: int


def fleet_specs() -> list[PlacementSpec]:
    """Expand the manifest into one entry per ship instance."""
    specs: list[PlacementSpec] = []
    for entry in FLEET:
        for index in range(1, entry.count + 1):
            label = f"{entry.name} {index}" if entry.count > 1 else entry.name
            specs.append(PlacementSpec(entry.name, label, entry.length))
    return specs


@dataclass
class Ship:
    """Represents a single ship instance owned by a board."""

    id: int
    label: str
    base_name: str
    length: int
    cells: tuple[Coordinate, ...]
    hits: int = 0

    @property
    def sunk(self) -> bool:
        """A ship is sunk once it has taken as many hits as it has cells."""
        return self.hits >= self.length

    def register_hit(self) -> bool:
        """Count one hit and report whether the ship just went down."""
        self.hits += 1
        return self.sunk
