"""Tests for the command-line front-end."""

from typing import Iterator

import pytest

from salvo.ai.targeting import Difficulty
from salvo.cli import format_board, play_game
from salvo.engine.board import Board
from salvo.engine.ship import ROW_LABELS, Coordinate


def _scripted(lines: list[str]):
    feed: Iterator[str] = iter(lines)
    return lambda _prompt: next(feed)


@pytest.fixture(autouse=True)
def _no_ai_delay(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SALVO_AI_DELAY", "0")


def test_format_board_symbols() -> None:
    board = Board()
    board.place_ship("Patrol", 2, [Coordinate(0, 0), Coordinate(1, 0)], "Patrol")
    board.place_ship("Destroyer", 4, [Coordinate(x, 2) for x in range(4)], "Destroyer")
    board.fire(Coordinate(0, 0))
    board.fire(Coordinate(1, 0))
    board.fire(Coordinate(0, 2))
    board.fire(Coordinate(9, 9))

    lines = format_board(board, show_ships=True).splitlines()
    assert lines[1].split("|")[1].split()[:3] == ["#", "#", "."]
    assert lines[3].split("|")[1].split()[:5] == ["X", "S", "S", "S", "."]
    assert lines[10].split()[-1] == "o"

    hidden = format_board(board, show_ships=False).splitlines()
    assert "S" not in "".join(hidden[1:])


def test_quit_during_battle(capsys) -> None:
    with pytest.raises(SystemExit):
        play_game(seed=1, manual=False, read=_scripted(["Z9", "A1", "q"]))
    out = capsys.readouterr().out
    assert "Invalid input: Row must be between A and J." in out
    assert "You fired at A1" in out
    assert "Enemy fired at" in out


def test_manual_placement_commands(capsys) -> None:
    with pytest.raises(SystemExit):
        play_game(seed=2, manual=True, read=_scripted(["A1", "r", "s", "a", "s", "q"]))
    out = capsys.readouterr().out
    assert "Placed Carrier." in out
    assert "Orientation: Vertical." in out
    assert "Place all ships before starting battle." in out
    assert "Battle started." in out


def test_full_game_reaches_game_over() -> None:
    labels = [f"{row}{col}" for row in ROW_LABELS for col in range(1, 11)]
    session = play_game(
        seed=3,
        difficulty=Difficulty.IMPOSSIBLE,
        manual=False,
        read=_scripted(labels),
    )
    assert session.game_over
    assert session.winner is not None
