"""
Tests for controllers.drill_controller.
"""
from unittest.mock import Mock, patch

import chess
import pytest

from controllers.drill_controller import DrillController
from core.drill import DrillSession, MoveAssessment
from core.errors import BoardDivergedError
from core.move_selectors import MostPlayedMoveSelector
from core.notation import replay
from core.repertoire import RepertoireGraph


@pytest.fixture
def controller(branching_graph):
    return DrillController(branching_graph, MostPlayedMoveSelector())


def uci(text):
    return chess.Move.from_uci(text)


class TestFreePlay:
    """Moves played before a drill starts."""

    def test_records_moves(self, controller):
        assert controller.play(uci("e2e4")) is None
        assert controller.play(uci("c7c5")) is None
        assert controller.free_play_moves == ["e4", "c5"]
        assert controller.board.fen() == replay(["e4", "c5"]).fen()

    def test_illegal_move_ignored(self, controller):
        assert controller.play(uci("e2e5")) is None
        assert controller.free_play_moves == []
        assert controller.board.fen() == chess.STARTING_FEN

    def test_known_moves_in_free_play(self, controller):
        controller.play(uci("e2e4"))
        assert controller.known_moves() == {"e5": 4, "c5": 2}

    def test_known_moves_off_book(self, controller):
        controller.play(uci("h2h4"))
        assert controller.known_moves() == {}

    def test_position_callback(self, controller):
        callback = Mock()
        controller.set_on_position_changed(callback)
        controller.play(uci("d2d4"))
        board = callback.call_args.args[0]
        assert board.fen() == replay(["d4"]).fen()

    def test_is_player_turn_without_session(self, controller):
        assert controller.is_player_turn()
        assert not controller.still_running()
        assert controller.apply_move("e4") is None
        assert controller.make_move() is None


class TestStartDrill:
    """Switching from free play into a drill."""

    def test_start_from_initial_position(self, controller):
        assert controller.start_drill()
        assert isinstance(controller.session, DrillSession)
        assert controller.still_running()

    def test_unknown_line_stays_in_free_play(self, controller):
        controller.play(uci("h2h4"))
        assert not controller.start_drill()
        assert controller.session is None
        assert controller.free_play_moves == ["h4"]

    def test_bot_moves_first_for_black_player(self, branching_graph):
        controller = DrillController(branching_graph, MostPlayedMoveSelector(), chess.BLACK)
        assert controller.start_drill()
        assert controller.session.history == ["e4"]
        assert controller.is_player_turn()

    def test_start_after_free_play_prefix(self, controller):
        controller.play(uci("e2e4"))
        controller.play(uci("c7c5"))
        assert controller.start_drill()
        assert controller.session.history == ["e4", "c5"]
        assert controller.is_player_turn()

    def test_running_drill_is_kept(self, controller):
        controller.start_drill()
        session = controller.session
        assert controller.start_drill()
        assert controller.session is session

    def test_finished_drill_is_replaced(self, controller):
        controller.start_drill()
        controller.play(uci("c2c4"))
        assert not controller.still_running()
        finished = controller.session
        assert controller.start_drill()
        assert controller.session is not finished
        assert controller.session.history == []


class TestDrilling:
    """Playing moves during a drill."""

    def test_in_prep_move_triggers_bot_reply(self, controller):
        controller.start_drill()
        assert controller.play(uci("e2e4")) == MoveAssessment.IN_PREP
        assert controller.session.history == ["e4", "e5"]
        assert controller.board.fen() == replay(["e4", "e5"]).fen()
        assert controller.is_player_turn()

    def test_deviation_keeps_position(self, controller):
        controller.start_drill()
        controller.play(uci("e2e4"))
        assert controller.play(uci("a2a3")) == MoveAssessment.DEVIATED
        assert controller.session.history == ["e4", "e5"]

    def test_end_of_line(self, controller):
        controller.start_drill()
        controller.play(uci("c2c4"))
        assert not controller.still_running()
        assert controller.play(uci("e7e5")) == MoveAssessment.END_OF_LINE

    def test_illegal_move_during_drill_ignored(self, controller):
        controller.start_drill()
        assert controller.play(uci("e2e5")) is None
        assert controller.session.history == []

    def test_play_san_and_uci(self, controller):
        controller.start_drill()
        assert controller.play_san("e4") == MoveAssessment.IN_PREP
        assert controller.play_uci("g1f3") == MoveAssessment.IN_PREP
        assert controller.play_san("Qxh7") is None
        assert controller.play_uci("zz") is None

    def test_free_play_moves_untouched_by_drill(self, controller):
        controller.start_drill()
        controller.play(uci("e2e4"))
        assert controller.free_play_moves == []

    def test_flip_changes_drilled_color(self, controller):
        controller.flip()
        assert controller.player_color == chess.BLACK
        controller.set_player_color(chess.WHITE)
        assert controller.player_color == chess.WHITE


class TestInvariantViolation:
    """A bot move that cannot be played ends the drill without crashing."""

    def test_board_divergence_abandons_session(self, caplog):
        graph = RepertoireGraph.build([("e4", "Ke3")])
        controller = DrillController(graph, MostPlayedMoveSelector())
        controller.start_drill()

        assert controller.play(uci("e2e4")) == MoveAssessment.IN_PREP

        assert controller.session is None
        assert any(record.levelname == "ERROR" for record in caplog.records)
        # Back to the free-play board
        assert controller.board.fen() == chess.STARTING_FEN

    def test_make_move_swallows_only_divergence(self, controller):
        controller.start_drill()
        with patch.object(DrillSession, "make_move", side_effect=BoardDivergedError("Nf3", "fen")):
            assert controller.make_move() is None
        assert controller.session is None

    def test_unplayable_player_edge_abandons_session(self, caplog):
        graph = RepertoireGraph.build([("e4", "Ke3")])
        controller = DrillController(graph, MostPlayedMoveSelector(), chess.BLACK)
        controller.start_drill()
        assert controller.session.history == ["e4"]

        assert controller.apply_move("Ke3") is None

        assert controller.session is None
        assert not controller.still_running()
        assert any(record.levelname == "ERROR" for record in caplog.records)

    def test_apply_move_swallows_divergence(self, controller):
        controller.start_drill()
        with patch.object(DrillSession, "apply_move", side_effect=BoardDivergedError("e4", "fen")):
            assert controller.apply_move("e4") is None
        assert controller.session is None


class TestReset:
    """Resetting the controller."""

    def test_reset_clears_everything(self, controller):
        controller.play(uci("e2e4"))
        controller.start_drill()
        controller.reset()
        assert controller.session is None
        assert controller.free_play_moves == []
        assert controller.board.fen() == chess.STARTING_FEN
