"""Command-line front-end for playing Salvo against the computer."""

from __future__ import annotations

import argparse
import logging
import time
from typing import Callable, Sequence

from salvo.ai.targeting import Difficulty
from salvo.engine.board import Board
from salvo.engine.game import EventKind, GameEvent, GamePhase, GameSession
from salvo.engine.scheduler import ManualScheduler
from salvo.engine.settings import EngineSettings
from salvo.engine.ship import ROW_LABELS, Coordinate
from salvo.telemetry import configure_console_logging, init_telemetry, shutdown_telemetry

InputFn = Callable[[str], str]


def format_board(board: Board, show_ships: bool) -> str:
    header = "    " + " ".join(f"{col + 1:>2}" for col in range(board.size))
    rows = [header]
    for y in range(board.size):
        symbols = []
        for x in range(board.size):
            cell = board.cell(Coordinate(x, y))
            if cell.sunk:
                symbol = "#"
            elif cell.shot and cell.occupied:
                symbol = "X"
            elif cell.shot:
                symbol = "o"
            else:
                symbol = "S" if show_ships and cell.occupied else "."
            symbols.append(f"{symbol:>2}")
        rows.append(f"{ROW_LABELS[y]} |" + " ".join(symbols))
    return "\n".join(rows)


def _print_event(event: GameEvent) -> None:
    if event.kind is EventKind.STATUS:
        print(event.message)


def _ask(prompt: str, read: InputFn) -> str:
    raw = read(prompt).strip()
    if raw.lower() == "q":
        raise SystemExit("Goodbye!")
    return raw


def _prompt_manual_setup(read: InputFn) -> bool:
    while True:
        raw = _ask("Would you like to place your ships manually? [Y/n]: ", read).lower()
        if raw in {"", "y", "yes"}:
            return True
        if raw in {"n", "no"}:
            return False
        print("Please answer with 'y' or 'n'.")


def _placement_phase(session: GameSession, read: InputFn) -> None:
    """Handle commands until the fleet is complete and the battle starts."""
    commands = "coordinate (e.g. A1), r=rotate, a=auto-place, u=undo, c=clear, s=start, q=quit"
    while session.phase is GamePhase.PLACEMENT:
        print("\nYour fleet:")
        print(format_board(session.player_board, show_ships=True))
        spec = session.planner.next_spec
        if spec is not None:
            print(
                f"Next ship: {spec.label} ({spec.length} cells), "
                f"{session.planner.orientation.value}."
            )
        raw = _ask(f"[{commands}]: ", read).lower()
        if raw == "r":
            session.rotate()
        elif raw == "a":
            session.auto_place()
        elif raw == "u":
            session.undo_placement()
        elif raw == "c":
            session.clear_placements()
        elif raw == "s":
            session.start_battle()
        else:
            try:
                origin = Coordinate.parse(raw)
            except ValueError as exc:
                print(f"Invalid input: {exc}")
                continue
            session.place_ship(origin)


def _battle_phase(session: GameSession, scheduler: ManualScheduler, read: InputFn) -> None:
    while not session.game_over:
        print("\nYour Board:")
        print(format_board(session.player_board, show_ships=True))
        print("\nEnemy Waters:")
        print(format_board(session.enemy_board, show_ships=False))

        raw = _ask("Enter target coordinate (e.g., A5) or 'q' to quit: ", read)
        try:
            target = Coordinate.parse(raw)
        except ValueError as exc:
            print(f"Invalid input: {exc}")
            continue
        result = session.player_fire(target)
        if result is None or not result.ok:
            continue
        if session.lock_input:
            time.sleep(session.settings.ai_delay_seconds)
            scheduler.run_pending()


def play_game(
    seed: int | None = None,
    difficulty: Difficulty | None = None,
    manual: bool | None = None,
    read: InputFn = input,
) -> GameSession:
    print("Welcome to Salvo!\n")
    overrides = {"difficulty": difficulty} if difficulty else {}
    settings = EngineSettings.from_env(**overrides)
    scheduler = ManualScheduler()
    session = GameSession(settings=settings, scheduler=scheduler, rng_seed=seed)
    session.subscribe(_print_event)

    if manual is None:
        manual = _prompt_manual_setup(read)
    session.new_game(manual_placement=manual)
    if not manual:
        print("\nYour ships have been positioned automatically.")
    _placement_phase(session, read)
    _battle_phase(session, scheduler, read)

    print("\nFinal boards:")
    print(format_board(session.player_board, show_ships=True))
    print()
    print(format_board(session.enemy_board, show_ships=True))
    return session


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Play Salvo via the CLI.")
    parser.add_argument(
        "--seed", type=int, default=None, help="Optional RNG seed for reproducibility."
    )
    parser.add_argument(
        "--difficulty",
        choices=[difficulty.value for difficulty in Difficulty],
        default=None,
        help="Computer strength (defaults to SALVO_DIFFICULTY or medium).",
    )
    parser.add_argument(
        "--auto-place",
        action="store_true",
        help="Skip manual placement and deal your fleet randomly.",
    )
    parser.add_argument("--verbose", action="store_true", help="Show engine log output.")
    args = parser.parse_args(argv)

    configure_console_logging(logging.INFO if args.verbose else logging.WARNING)
    init_telemetry()
    try:
        play_game(
            seed=args.seed,
            difficulty=Difficulty(args.difficulty) if args.difficulty else None,
            manual=False if args.auto_place else None,
        )
    finally:
        shutdown_telemetry()


if __name__ == "__main__":
    main()
