"""Player-versus-computer game session."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from salvo.ai.opponent import ComputerOpponent
from salvo.ai.targeting import Difficulty
from salvo.telemetry import get_meter, get_tracer

from .board import Board, BoardSnapshot, ShotOutcome, ShotResult
from .placement import FleetPlanner, Placement, PlacementError, place_fleet_random
from .scheduler import ManualScheduler, Scheduler
from .settings import EngineSettings, load_settings
from .ship import Coordinate, Orientation

logger = logging.getLogger(__name__)
tracer = get_tracer("salvo.engine.game")
meter = get_meter("salvo.engine.game")

TURN_COUNTER = meter.create_counter(
    "salvo_engine_turns",
    unit="1",
    description="Shots resolved by a GameSession, per side",
)


class GamePhase(Enum):
    """High-level lifecycle of a match."""

    PLACEMENT = "placement"
    BATTLE = "battle"
    GAME_OVER = "game_over"


class Side(Enum):
    """The two fleets in a session."""

    PLAYER = "player"
    COMPUTER = "computer"


class EventKind(Enum):
    STATUS = "status"
    SHIP_PLACED = "ship_placed"
    FLEET_READY = "fleet_ready"
    BATTLE_STARTED = "battle_started"
    SHOT = "shot"
    GAME_OVER = "game_over"


@dataclass(frozen=True)
class GameEvent:
    """Notification for the presentation layer."""

    kind: EventKind
    message: str
    side: Side | None = None
    target: Coordinate | None = None
    result: ShotResult | None = None


GameListener = Callable[[GameEvent], None]


@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of the current session."""

    phase: GamePhase
    player_turn: bool
    input_locked: bool
    game_over: bool
    winner: Side | None
    difficulty: Difficulty
    orientation: Orientation
    placements_remaining: int
    status: str
    boards: dict[Side, BoardSnapshot]


class GameSession:
    """Owns both boards, the computer opponent and the turn state of one game.

    The computer's reply is scheduled through ``scheduler`` after
    ``settings.ai_delay_seconds``. Each scheduled callback carries the
    generation it was created in and does nothing once ``new_game`` has moved
    the session on. A fresh session already holds a dealt computer fleet and
    sits in the placement phase, so ``new_game`` is optional for the first game.
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        scheduler: Scheduler | None = None,
        rng_seed: int | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.scheduler: Scheduler = scheduler or ManualScheduler()
        self._rng = random.Random(rng_seed)
        self.opponent = ComputerOpponent(self.settings.difficulty, rng=self._rng)
        self.planner = FleetPlanner(max_attempts=self.settings.placement_attempts)
        self.player_board: Board = self.planner.board
        self.enemy_board = Board(owner=Side.COMPUTER.value)
        place_fleet_random(self.enemy_board, self._rng, self.settings.placement_attempts)
        self.phase = GamePhase.PLACEMENT
        self.player_turn = False
        self.lock_input = False
        self.game_over = False
        self.winner: Side | None = None
        self.generation = 0
        self.status = ""
        self._pending_turn: int | None = None
        self._listeners: list[GameListener] = []

    @property
    def difficulty(self) -> Difficulty:
        return self.opponent.difficulty

    @property
    def accepts_player_shots(self) -> bool:
        return (
            self.phase is GamePhase.BATTLE
            and self.player_turn
            and not self.lock_input
            and not self.game_over
        )

    def subscribe(self, listener: GameListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    # Setup -----------------------------------------------------------------

    def new_game(self, manual_placement: bool = True) -> None:
        """Reset everything and deal a new computer fleet.

        With ``manual_placement`` false the player's fleet is placed randomly
        too and the battle starts straight away. ``PlacementError`` leaves the
        previous game untouched.
        """
        with tracer.start_as_current_span("game.new_game") as span:
            span.set_attribute("manual_placement", manual_placement)
            enemy_board = Board(owner=Side.COMPUTER.value)
            place_fleet_random(enemy_board, self._rng, self.settings.placement_attempts)
            planner = FleetPlanner(max_attempts=self.settings.placement_attempts)
            if not manual_placement:
                planner.auto_place_remaining(self._rng)

            self._cancel_pending_turn()
            self.generation += 1
            self.enemy_board = enemy_board
            self.planner = planner
            self.player_board = planner.board
            self.opponent.reset()
            self.phase = GamePhase.PLACEMENT
            self.player_turn = False
            self.lock_input = False
            self.game_over = False
            self.winner = None
            span.set_attribute("generation", self.generation)
            logger.info(
                "game_created",
                extra={"generation": self.generation, "manual_placement": manual_placement},
            )

            if manual_placement:
                self._set_status(
                    "Placement phase: place your ships, then start the battle."
                )
            else:
                self.start_battle()

    def rotate(self) -> Orientation | None:
        if not self._in_placement():
            return None
        orientation = self.planner.rotate()
        self._set_status(f"Orientation: {orientation.value.title()}.")
        return orientation

    def place_ship(self, origin: Coordinate) -> Placement | None:
        """Place the next queued ship with its bow at ``origin``."""
        if not self._in_placement():
            return None
        spec = self.planner.next_spec
        if spec is None:
            self._set_status("All ships placed. Press Start Battle.")
            return None

        placement = self.planner.place(origin)
        if placement is None:
            self._set_status("Invalid placement. Move ship or rotate and try again.")
            return None

        self.player_board = self.planner.board
        self._emit(EventKind.SHIP_PLACED, f"Placed {spec.label}.", side=Side.PLAYER)
        if self.planner.is_complete:
            self._emit(EventKind.FLEET_READY, "Fleet Ready", side=Side.PLAYER)
            self._set_status("Fleet deployed. Press Start Battle.")
        else:
            self._set_status(f"Placed {spec.label}.")
        return placement

    def auto_place(self) -> bool:
        """Randomly place every ship the player has not placed yet."""
        if not self._in_placement():
            return False
        try:
            self.planner.auto_place_remaining(self._rng)
        except PlacementError:
            logger.warning("auto_place_failed", extra={"generation": self.generation})
            self._set_status("Auto-place failed. Try again or clear and retry.")
            return False
        self.player_board = self.planner.board
        self._emit(EventKind.FLEET_READY, "Auto Deploy", side=Side.PLAYER)
        self._set_status("Fleet auto-deployed. Press Start Battle.")
        return True

    def undo_placement(self) -> Placement | None:
        if not self._in_placement():
            return None
        removed = self.planner.undo()
        if removed is None:
            return None
        self.player_board = self.planner.board
        self._set_status(f"Removed {removed.spec.label}. Place it again.")
        return removed

    def clear_placements(self) -> None:
        if not self._in_placement():
            return
        self.planner.clear()
        self.player_board = self.planner.board
        self._set_status("Cleared your board. Place your fleet again.")

    def start_battle(self) -> bool:
        if self.phase is not GamePhase.PLACEMENT or self.game_over:
            return False
        if not self.planner.is_complete:
            self._set_status("Place all ships before starting battle.")
            return False
        if not self.enemy_board.ships:
            logger.error("enemy_fleet_missing", extra={"generation": self.generation})
            self._set_status("Enemy fleet is not deployed. Start a new game.")
            return False

        self.phase = GamePhase.BATTLE
        self.player_turn = True
        self.lock_input = False
        self.opponent.reset()
        logger.info(
            "battle_started",
            extra={"generation": self.generation, "difficulty": self.difficulty.value},
        )
        self._emit(EventKind.BATTLE_STARTED, "Battle Start")
        self._set_status(
            f"Battle started. Difficulty: {self.difficulty.label}. Fire on enemy waters."
        )
        return True

    def set_difficulty(self, difficulty: Difficulty) -> None:
        """Switch the computer's tier; it applies from the next computer shot."""
        self.opponent.difficulty = difficulty
        if self.phase is GamePhase.BATTLE:
            self._set_status(f"Difficulty switched to {difficulty.label} for AI turns.")
        elif self.phase is GamePhase.PLACEMENT:
            self._set_status(f"Difficulty set to {difficulty.label}.")

    # Battle ----------------------------------------------------------------

    def player_fire(self, target: Coordinate) -> ShotResult | None:
        """Fire at the enemy board.

        Returns ``None`` when the player may not act right now, and a rejected
        ``ShotResult`` (turn kept) for off-board or repeated targets.
        """
        with tracer.start_as_current_span("game.player_fire") as span:
            span.set_attribute("target", target.label)
            if self.phase is GamePhase.PLACEMENT:
                self._set_status("Finish placement first, then start battle.")
                return None
            if not self.accepts_player_shots:
                logger.warning(
                    "player_shot_ignored",
                    extra={
                        "phase": self.phase.value,
                        "player_turn": self.player_turn,
                        "lock_input": self.lock_input,
                    },
                )
                return None

            result = self.enemy_board.fire(target)
            if not result.ok:
                if result.repeated:
                    self._set_status("That coordinate has already been fired on.")
                else:
                    self._set_status("That coordinate is off the board.")
                return result

            TURN_COUNTER.add(1, attributes={"side": Side.PLAYER.value})
            self._emit(
                EventKind.SHOT,
                _player_shot_line(target, result),
                side=Side.PLAYER,
                target=target,
                result=result,
            )
            if self._check_game_over():
                return result

            self.player_turn = False
            self.lock_input = True
            self._set_status(f"{_player_shot_line(target, result)} Enemy is thinking...")
            generation = self.generation
            self._pending_turn = self.scheduler.call_later(
                self.settings.ai_delay_seconds,
                lambda: self._resolve_computer_turn(generation),
            )
            return result

    def _resolve_computer_turn(self, generation: int) -> None:
        if generation != self.generation:
            logger.info(
                "stale_computer_turn_ignored",
                extra={"scheduled_generation": generation, "generation": self.generation},
            )
            return
        self._pending_turn = None
        if self.game_over or self.phase is not GamePhase.BATTLE:
            return

        try:
            target, result = self._computer_shot()
            if target is None or result is None or not result.ok:
                logger.error("computer_turn_unresolved", extra={"generation": generation})
                self._hand_back_turn("Enemy move failed to resolve. Your turn.")
                return

            self.opponent.observe(self.player_board, target, result)
            TURN_COUNTER.add(1, attributes={"side": Side.COMPUTER.value})
            self._emit(
                EventKind.SHOT,
                _computer_shot_line(target, result),
                side=Side.COMPUTER,
                target=target,
                result=result,
            )
            if self._check_game_over():
                return
            self._hand_back_turn(f"{_computer_shot_line(target, result)} Your turn.")
        except Exception:
            logger.exception("computer_turn_failed", extra={"generation": generation})
            self._hand_back_turn("Enemy move encountered an error. Your turn.")

    def _computer_shot(self) -> tuple[Coordinate | None, ShotResult | None]:
        """Choose and fire, retrying once per cell if a stale target comes back."""
        target: Coordinate | None = None
        result: ShotResult | None = None
        board = self.player_board
        for _ in range(board.size * board.size):
            target = self.opponent.choose_target(board)
            if target is None:
                break
            result = board.fire(target)
            if result.ok:
                break
        return target, result

    def _hand_back_turn(self, message: str) -> None:
        if self.game_over or self.phase is not GamePhase.BATTLE:
            return
        self.player_turn = True
        self.lock_input = False
        self._set_status(message)

    def _check_game_over(self) -> bool:
        if self.enemy_board.all_ships_sunk():
            winner, message = Side.PLAYER, "Victory. You destroyed the enemy fleet."
        elif self.player_board.all_ships_sunk():
            winner = Side.COMPUTER
            message = f"Defeat on {self.difficulty.label} mode. Start a new game."
        else:
            return False

        self.winner = winner
        self.game_over = True
        self.phase = GamePhase.GAME_OVER
        self.lock_input = False
        self.player_turn = False
        logger.info(
            "game_finished",
            extra={"winner": winner.value, "generation": self.generation},
        )
        self._emit(EventKind.GAME_OVER, message, side=winner)
        self._set_status(message)
        return True

    # Queries ---------------------------------------------------------------

    def get_state(self) -> GameState:
        """Return an immutable view of the session."""
        return GameState(
            phase=self.phase,
            player_turn=self.player_turn,
            input_locked=self.lock_input,
            game_over=self.game_over,
            winner=self.winner,
            difficulty=self.difficulty,
            orientation=self.planner.orientation,
            placements_remaining=len(self.planner.queue) - len(self.planner.placements),
            status=self.status,
            boards={
                Side.PLAYER: self.player_board.snapshot(),
                Side.COMPUTER: self.enemy_board.snapshot(),
            },
        )

    def _in_placement(self) -> bool:
        return self.phase is GamePhase.PLACEMENT and not self.game_over

    def _cancel_pending_turn(self) -> None:
        if self._pending_turn is not None:
            self.scheduler.cancel(self._pending_turn)
            self._pending_turn = None

    def _set_status(self, message: str) -> None:
        self.status = message
        self._emit(EventKind.STATUS, message)

    def _emit(
        self,
        kind: EventKind,
        message: str,
        side: Side | None = None,
        target: Coordinate | None = None,
        result: ShotResult | None = None,
    ) -> None:
        event = GameEvent(kind, message, side=side, target=target, result=result)
        for listener in list(self._listeners):
            listener(event)


def _player_shot_line(target: Coordinate, result: ShotResult) -> str:
    if result.outcome is ShotOutcome.SUNK:
        return f"You fired at {target.label} and sunk an enemy {result.ship_name}."
    if result.outcome is ShotOutcome.HIT:
        return f"You fired at {target.label} and hit a ship."
    return f"You fired at {target.label} and missed."


def _computer_shot_line(target: Coordinate, result: ShotResult) -> str:
    if result.outcome is ShotOutcome.SUNK:
        return f"Enemy fired at {target.label} and sunk your {result.ship_name}."
    if result.outcome is ShotOutcome.HIT:
        return f"Enemy fired at {target.label} and scored a hit."
    return f"Enemy fired at {target.label} and missed."
