"""Tests for the ComputerOpponent wrapper."""

import random

from salvo.ai.opponent import ComputerOpponent
from salvo.ai.targeting import Difficulty
from salvo.engine.board import Board
from salvo.engine.ship import Coordinate, Orientation, ship_cells


def _destroyer_board() -> Board:
    board = Board()
    board.place_ship("Destroyer", 4, ship_cells(Coordinate(2, 4), 4, Orientation.HORIZONTAL))
    return board


def test_hit_queues_unshot_neighbours() -> None:
    board = _destroyer_board()
    opponent = ComputerOpponent(Difficulty.MEDIUM, rng=random.Random(0))
    board.fire(Coordinate(2, 3))
    target = Coordinate(2, 4)
    opponent.observe(board, target, board.fire(target))
    assert list(opponent.memory.queue) == [Coordinate(3, 4), Coordinate(1, 4), Coordinate(2, 5)]


def test_miss_leaves_queue_alone() -> None:
    board = _destroyer_board()
    opponent = ComputerOpponent(Difficulty.MEDIUM, rng=random.Random(0))
    target = Coordinate(9, 9)
    opponent.observe(board, target, board.fire(target))
    assert len(opponent.memory) == 0


def test_medium_follows_up_on_hits_until_sunk() -> None:
    board = _destroyer_board()
    opponent = ComputerOpponent(Difficulty.MEDIUM, rng=random.Random(1))
    first = Coordinate(3, 4)
    opponent.observe(board, first, board.fire(first))

    shots = 0
    while not board.all_ships_sunk():
        assert len(opponent.memory) > 0
        target = opponent.choose_target(board)
        assert target is not None
        opponent.observe(board, target, board.fire(target))
        shots += 1
        assert shots < 20
    assert all(not board.cell(coord).shot for coord in opponent.memory.queue)


def test_reset_clears_memory() -> None:
    board = _destroyer_board()
    opponent = ComputerOpponent(Difficulty.HARD, rng=random.Random(0))
    target = Coordinate(4, 4)
    opponent.observe(board, target, board.fire(target))
    assert len(opponent.memory) == 4
    opponent.reset()
    assert len(opponent.memory) == 0


def test_choose_target_returns_none_on_full_board() -> None:
    board = Board()
    for coord in board.coordinates():
        board.fire(coord)
    assert ComputerOpponent(Difficulty.EASY).choose_target(board) is None
