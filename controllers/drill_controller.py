"""
Drill controller.

Sits between an input loop and the drill session: filters illegal input,
keeps the free-play board when no drill is running and plays the bot's
replies while one is.
"""
import logging
from typing import Callable, Dict, List, Optional

import chess

from core.drill import DrillSession, MoveAssessment, start_drill
from core.errors import BoardDivergedError, NotationError
from core.move_selectors import MoveSelector
from core.notation import from_notation, to_notation
from core.repertoire import ROOT, RepertoireGraph

logger = logging.getLogger(__name__)


class DrillController:
    """Owns the board shown to the player and the active drill session, if any."""

    def __init__(self, graph: RepertoireGraph, selector: Optional[MoveSelector] = None,
                 player_color: chess.Color = chess.WHITE):
        self.graph = graph
        self.selector = selector
        self.player_color = player_color
        self.session: Optional[DrillSession] = None
        self.free_play_moves: List[str] = []
        self._board = chess.Board()
        self._on_position_changed: Optional[Callable[[chess.Board], None]] = None

    def set_on_position_changed(self, callback: Callable[[chess.Board], None]):
        """Set callback to be called when position changes"""
        self._on_position_changed = callback

    @property
    def board(self) -> chess.Board:
        if self.session is not None:
            return self.session.board
        return self._board.copy()

    def set_player_color(self, color: chess.Color):
        self.player_color = color

    def flip(self):
        self.player_color = not self.player_color

    # Session driver

    def start_drill(self) -> bool:
        """
        Start drilling from the moves played so far.

        Does nothing while a drill is still running. Returns False when the
        current line is unknown; the controller stays in free play.
        """
        if self.session is not None:
            if self.session.still_running():
                return True
            self.session = None

        logger.info("Starting drill")
        self.session = start_drill(self.graph, self.player_color, self.free_play_moves, self.selector)
        if self.session is None:
            return False

        if not self.session.is_player_turn():
            logger.info("Bot to move first")
            self.make_move()
        self._notify()
        return self.session is not None

    def is_player_turn(self) -> bool:
        if self.session is None:
            return True
        return self.session.is_player_turn()

    def still_running(self) -> bool:
        return self.session is not None and self.session.still_running()

    def apply_move(self, san: str) -> Optional[MoveAssessment]:
        """
        Assess a player move in the active drill.

        Like make_move, a move the board cannot play ends the drill and
        returns None.
        """
        if self.session is None:
            return None
        try:
            return self.session.apply_move(san)
        except BoardDivergedError:
            logger.exception(f"Move {san} could not be played, abandoning drill")
            self.session = None
            return None

    def make_move(self) -> Optional[str]:
        """
        Let the bot reply in the active drill.

        A board/graph divergence is logged and ends the drill instead of
        propagating.
        """
        if self.session is None:
            return None
        try:
            san = self.session.make_move()
        except BoardDivergedError:
            logger.exception("Bot move could not be played, abandoning drill")
            self.session = None
            return None
        if san is not None:
            logger.info(f"Bot played {san}")
        return san

    def reset(self):
        """Drop the drill and go back to an empty free-play board."""
        self.session = None
        self.free_play_moves.clear()
        self._board = chess.Board()
        self._notify()

    # Input

    def play(self, move: chess.Move) -> Optional[MoveAssessment]:
        """
        Handle a move from the player.

        Illegal moves are ignored. In free play the move is recorded and None
        is returned; during a drill the move's assessment is returned.
        """
        board = self.board
        if not board.is_legal(move):
            return None
        san = to_notation(move, board)
        if san is None:
            logger.error(f"Legal move {move.uci()} has no notation on {board.fen()}")
            return None

        if self.session is None:
            self.free_play_moves.append(san)
            self._board.push(move)
            self._notify()
            return None

        assessment = self.apply_move(san)
        if assessment is None:
            self._notify()
            return None
        if assessment == MoveAssessment.IN_PREP:
            if not self.session.is_player_turn():
                self.make_move()
        else:
            logger.info(f"{san}: {assessment.value}")
        self._notify()
        return assessment

    def play_uci(self, uci: str) -> Optional[MoveAssessment]:
        try:
            move = chess.Move.from_uci(uci)
        except chess.InvalidMoveError:
            return None
        return self.play(move)

    def play_san(self, san: str) -> Optional[MoveAssessment]:
        try:
            move = from_notation(san, self.board)
        except NotationError:
            return None
        return self.play(move)

    def known_moves(self) -> Dict[str, int]:
        """Continuations the repertoire knows from the current position."""
        if self.session is not None:
            return self.session.known_moves()
        node = self.graph.find_path(ROOT, self.free_play_moves)
        return self.graph.children_of(node) if node is not None else {}

    def _notify(self):
        if self._on_position_changed:
            self._on_position_changed(self.board)
