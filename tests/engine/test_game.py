"""High-level gameplay tests for GameSession."""

import pytest

from salvo.ai.targeting import Difficulty
from salvo.engine.board import Board, ShotOutcome
from salvo.engine.game import EventKind, GameEvent, GamePhase, GameSession, Side
from salvo.engine.placement import PlacementError
from salvo.engine.scheduler import ManualScheduler
from salvo.engine.settings import EngineSettings
from salvo.engine.ship import Coordinate

DELAY = 0.6


def _session(difficulty: Difficulty = Difficulty.MEDIUM, seed: int = 7) -> tuple[GameSession, ManualScheduler]:
    scheduler = ManualScheduler()
    settings = EngineSettings(ai_delay_seconds=DELAY, difficulty=difficulty)
    return GameSession(settings=settings, scheduler=scheduler, rng_seed=seed), scheduler


def _patrol_board(owner: str) -> Board:
    board = Board(owner=owner)
    board.place_ship("Patrol", 2, [Coordinate(0, 0), Coordinate(1, 0)], "Patrol")
    return board


def _water(board: Board) -> list[Coordinate]:
    return [coord for coord in board.coordinates() if not board.cell(coord).occupied]


def test_new_game_starts_in_placement() -> None:
    session, _ = _session()
    session.new_game()
    assert session.phase is GamePhase.PLACEMENT
    assert session.generation == 1
    assert len(session.enemy_board.ships) == 5
    assert session.player_board.ships == []
    assert not session.player_turn
    assert session.status.startswith("Placement phase")


def test_quick_start_goes_straight_to_battle() -> None:
    session, _ = _session()
    session.new_game(manual_placement=False)
    assert session.phase is GamePhase.BATTLE
    assert session.player_turn
    assert len(session.player_board.ships) == 5
    assert session.status.startswith("Battle started. Difficulty: Medium.")


def test_start_battle_requires_complete_fleet() -> None:
    session, _ = _session()
    session.new_game()
    session.place_ship(Coordinate(0, 0))
    assert session.start_battle() is False
    assert session.phase is GamePhase.PLACEMENT
    assert session.status == "Place all ships before starting battle."

    assert session.auto_place() is True
    assert session.start_battle() is True
    assert session.phase is GamePhase.BATTLE
    assert session.player_turn
    assert not session.lock_input


def test_manual_placement_flow_through_session() -> None:
    session, _ = _session()
    session.new_game()
    assert session.place_ship(Coordinate(0, 0)) is not None
    assert session.status == "Placed Carrier."
    assert session.place_ship(Coordinate(1, 0)) is None
    assert session.status.startswith("Invalid placement")

    assert session.rotate() is not None
    assert session.place_ship(Coordinate(9, 1)) is not None
    assert session.player_board.ships[1].cells[-1] == Coordinate(9, 4)

    assert session.undo_placement() is not None
    assert session.status == "Removed Destroyer. Place it again."
    session.clear_placements()
    assert session.player_board.ships == []


def test_player_fire_before_battle_is_ignored() -> None:
    session, _ = _session()
    session.new_game()
    assert session.player_fire(Coordinate(0, 0)) is None
    assert session.status == "Finish placement first, then start battle."
    assert not session.enemy_board.cell(Coordinate(0, 0)).shot


def test_turn_cycle_locks_input_until_computer_replies() -> None:
    session, scheduler = _session()
    session.new_game(manual_placement=False)

    result = session.player_fire(Coordinate(3, 3))
    assert result is not None and result.ok
    assert session.lock_input
    assert not session.player_turn
    assert session.status.endswith("Enemy is thinking...")
    assert scheduler.pending == 1

    assert session.player_fire(Coordinate(4, 4)) is None
    assert not session.enemy_board.cell(Coordinate(4, 4)).shot

    assert scheduler.advance(0.1) == 0
    assert scheduler.advance(DELAY) == 1
    assert session.player_turn
    assert not session.lock_input
    assert len(session.player_board.unshot_coordinates()) == 99
    assert session.status.startswith("Enemy fired at ")
    assert session.status.endswith("Your turn.")


def test_repeated_player_shot_keeps_turn() -> None:
    session, scheduler = _session()
    session.new_game(manual_placement=False)
    session.player_fire(Coordinate(2, 2))
    scheduler.run_pending()

    result = session.player_fire(Coordinate(2, 2))
    assert result is not None
    assert result.repeated
    assert session.player_turn
    assert scheduler.pending == 0
    assert session.status == "That coordinate has already been fired on."


def test_player_sinks_enemy_fleet() -> None:
    session, scheduler = _session()
    session.new_game(manual_placement=False)
    session.enemy_board = _patrol_board("computer")

    first = session.player_fire(Coordinate(0, 0))
    assert first is not None and first.outcome is ShotOutcome.HIT
    scheduler.run_pending()
    second = session.player_fire(Coordinate(1, 0))
    assert second is not None and second.outcome is ShotOutcome.SUNK

    assert session.game_over
    assert session.winner is Side.PLAYER
    assert session.phase is GamePhase.GAME_OVER
    assert scheduler.pending == 0
    assert session.status == "Victory. You destroyed the enemy fleet."
    assert session.player_fire(Coordinate(5, 5)) is None


def test_computer_can_win() -> None:
    session, scheduler = _session(Difficulty.IMPOSSIBLE)
    session.new_game(manual_placement=False)
    session.player_board = _patrol_board("player")
    water = _water(session.enemy_board)

    session.player_fire(water[0])
    scheduler.run_pending()
    assert not session.game_over
    session.player_fire(water[1])
    scheduler.run_pending()

    assert session.game_over
    assert session.winner is Side.COMPUTER
    assert session.status == "Defeat on Impossible mode. Start a new game."
    assert not session.lock_input


def test_new_game_discards_pending_computer_turn() -> None:
    session, scheduler = _session()
    session.new_game(manual_placement=False)
    session.player_fire(Coordinate(0, 0))
    assert scheduler.pending == 1

    session.new_game(manual_placement=False)
    assert scheduler.pending == 0
    scheduler.advance(DELAY)
    assert len(session.player_board.unshot_coordinates()) == 100
    assert session.player_turn


def test_stale_generation_callback_is_ignored() -> None:
    session, _ = _session()
    session.new_game(manual_placement=False)
    stale = session.generation
    session.new_game(manual_placement=False)
    session.player_turn = False
    session.lock_input = True

    session._resolve_computer_turn(stale)
    assert len(session.player_board.unshot_coordinates()) == 100
    assert session.lock_input


def test_computer_error_hands_back_turn(monkeypatch: pytest.MonkeyPatch) -> None:
    session, scheduler = _session()
    session.new_game(manual_placement=False)

    def explode(board):
        raise RuntimeError("broken targeting")

    monkeypatch.setattr(session.opponent, "choose_target", explode)
    session.player_fire(Coordinate(0, 0))
    scheduler.run_pending()
    assert session.player_turn
    assert not session.lock_input
    assert session.status == "Enemy move encountered an error. Your turn."


def test_exhausted_retry_loop_hands_back_turn(monkeypatch: pytest.MonkeyPatch) -> None:
    session, scheduler = _session()
    session.new_game(manual_placement=False)
    session.player_board.fire(Coordinate(0, 0))
    calls: list[Coordinate] = []

    def stale_target(board):
        calls.append(Coordinate(0, 0))
        return Coordinate(0, 0)

    monkeypatch.setattr(session.opponent, "choose_target", stale_target)
    session.player_fire(Coordinate(0, 0))
    scheduler.run_pending()
    assert len(calls) == 100
    assert session.player_turn
    assert session.status == "Enemy move failed to resolve. Your turn."


def test_listeners_receive_shot_events() -> None:
    session, scheduler = _session()
    events: list[GameEvent] = []
    unsubscribe = session.subscribe(events.append)
    session.new_game(manual_placement=False)
    session.player_fire(Coordinate(6, 6))
    scheduler.run_pending()

    shots = [event for event in events if event.kind is EventKind.SHOT]
    assert [event.side for event in shots] == [Side.PLAYER, Side.COMPUTER]
    assert shots[0].target == Coordinate(6, 6)
    assert shots[0].result is not None and shots[0].result.ok
    assert any(event.kind is EventKind.BATTLE_STARTED for event in events)

    unsubscribe()
    count = len(events)
    session.player_fire(Coordinate(7, 7))
    assert len(events) == count


def test_set_difficulty_applies_to_next_computer_shot() -> None:
    session, _ = _session(Difficulty.EASY)
    session.new_game(manual_placement=False)
    session.set_difficulty(Difficulty.HARD)
    assert session.opponent.difficulty is Difficulty.HARD
    assert session.status == "Difficulty switched to Hard for AI turns."


def test_placement_edits_ignored_during_battle() -> None:
    session, _ = _session()
    session.new_game(manual_placement=False)
    ships = list(session.player_board.ships)
    assert session.place_ship(Coordinate(0, 0)) is None
    assert session.undo_placement() is None
    assert session.rotate() is None
    assert session.auto_place() is False
    session.clear_placements()
    assert session.player_board.ships == ships


def test_failed_new_game_keeps_previous_game(monkeypatch: pytest.MonkeyPatch) -> None:
    session, _ = _session()
    session.new_game(manual_placement=False)
    enemy = session.enemy_board

    def fail(*_args, **_kwargs):
        raise PlacementError("Could not place fleet. Please restart.")

    monkeypatch.setattr("salvo.engine.game.place_fleet_random", fail)
    with pytest.raises(PlacementError):
        session.new_game()
    assert session.generation == 1
    assert session.enemy_board is enemy
    assert session.phase is GamePhase.BATTLE


def test_get_state_snapshot() -> None:
    session, _ = _session()
    session.new_game()
    session.place_ship(Coordinate(0, 0))
    state = session.get_state()
    assert state.phase is GamePhase.PLACEMENT
    assert state.placements_remaining == 4
    assert state.difficulty is Difficulty.MEDIUM
    assert state.boards[Side.PLAYER].occupied[0, 4]
    assert state.boards[Side.COMPUTER].remaining_lengths == (5, 4, 3, 3, 2)


def test_fresh_session_plays_without_new_game() -> None:
    session, scheduler = _session()
    assert session.phase is GamePhase.PLACEMENT
    assert len(session.enemy_board.ships) == 5

    assert session.auto_place() is True
    assert session.start_battle() is True
    result = session.player_fire(Coordinate(0, 0))
    assert result is not None and result.ok
    assert not session.game_over
    assert session.winner is None

    scheduler.run_pending()
    assert session.player_turn
    assert len(session.player_board.unshot_coordinates()) == 99


def test_start_battle_requires_enemy_fleet() -> None:
    session, _ = _session()
    session.auto_place()
    session.enemy_board = Board(owner="computer")
    assert session.start_battle() is False
    assert session.phase is GamePhase.PLACEMENT
    assert session.status == "Enemy fleet is not deployed. Start a new game."
    assert session.player_fire(Coordinate(0, 0)) is None
    assert session.winner is None


@pytest.mark.parametrize("manual", [True, False])
def test_battle_always_has_a_full_enemy_fleet(manual: bool) -> None:
    session, _ = _session(seed=21)
    for _ in range(3):
        session.new_game(manual_placement=manual)
        if manual:
            session.auto_place()
            assert session.start_battle() is True
        assert session.phase is GamePhase.BATTLE
        assert len(session.enemy_board.ships) == 5
        assert not session.enemy_board.all_ships_sunk()
