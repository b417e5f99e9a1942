"""
Drill session state machine.

A session walks the repertoire graph alongside a live board. The player's
moves are checked against the known continuations; the bot answers for the
other side with a move taken from the graph.
"""
import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence

import chess

from core.errors import BoardDivergedError, NotationError
from core.move_selectors import MoveSelector, MostPlayedMoveSelector
from core.notation import from_notation, replay
from core.repertoire import ROOT, RepertoireGraph

logger = logging.getLogger(__name__)


class MoveAssessment(Enum):
    """How a player move relates to the repertoire."""
    IN_PREP = "in_prep"
    DEVIATED = "deviated"
    END_OF_LINE = "end_of_line"


class DrillSession:
    """
    One practice run through the repertoire.

    Use `start_drill` to create one. The session owns its board; the graph is
    shared and never modified.
    """

    def __init__(
        self,
        graph: RepertoireGraph,
        player_color: chess.Color,
        node: int,
        history: Sequence[str],
        board: chess.Board,
        selector: Optional[MoveSelector] = None
    ):
        self.graph = graph
        self.player_color = player_color
        self.selector = selector or MostPlayedMoveSelector()
        self._node = node
        self._history: List[str] = list(history)
        self._board = board
        self._finished = False

    @property
    def node(self) -> int:
        return self._node

    @property
    def history(self) -> List[str]:
        return list(self._history)

    @property
    def ply(self) -> int:
        return len(self._history)

    @property
    def board(self) -> chess.Board:
        """Copy of the live board."""
        return self._board.copy()

    def is_player_turn(self) -> bool:
        return (self.ply % 2 == 0) == (self.player_color == chess.WHITE)

    def known_moves(self) -> Dict[str, int]:
        return self.graph.children_of(self._node)

    def still_running(self) -> bool:
        return not self._finished and bool(self.known_moves())

    def apply_move(self, san: str) -> MoveAssessment:
        """
        Check a move against the repertoire and advance if it is known.

        A deviation leaves the session exactly where it was.
        """
        known = self.graph.children_of(self._node)
        if not known:
            self._finished = True
            return MoveAssessment.END_OF_LINE

        if san not in known:
            logger.debug(f"Deviation after {' '.join(self._history) or 'start'}: {san} (known: {', '.join(sorted(known))})")
            return MoveAssessment.DEVIATED

        self._advance(san, self._resolve(san))
        return MoveAssessment.IN_PREP

    def make_move(self) -> Optional[str]:
        """
        Play the bot's reply from the repertoire.

        Returns the SAN played, or None when it is the player's turn or the
        line has run out.

        Raises:
            BoardDivergedError: if the chosen move cannot be played on the live board
        """
        if self.is_player_turn():
            logger.warning("make_move called on the player's turn, ignoring")
            return None

        known = self.graph.children_of(self._node)
        san = self.selector.select_move(known)
        if san is None:
            self._finished = True
            return None

        self._advance(san, self._resolve(san))
        return san

    def _resolve(self, san: str) -> chess.Move:
        """Resolve a move taken from the graph on the live board."""
        try:
            return from_notation(san, self._board)
        except NotationError as e:
            error = BoardDivergedError(san, self._board.fen(), self._history, e.reason)
            logger.error(f"Repertoire invariant violated: {error}")
            raise error from e

    def _advance(self, san: str, move: chess.Move) -> None:
        self._board.push(move)
        self._history.append(san)
        self._node = self.graph.child(self._node, san)


def start_drill(
    graph: RepertoireGraph,
    player_color: chess.Color,
    opening_moves: Sequence[str] = (),
    selector: Optional[MoveSelector] = None
) -> Optional[DrillSession]:
    """
    Start a drill from the position after `opening_moves`.

    Returns None when the prefix is not in the repertoire, which just means
    there is nothing to drill from there yet.
    """
    node = graph.find_path(ROOT, opening_moves)
    if node is None:
        logger.info(f"No known line through {' '.join(opening_moves) or 'the start position'}")
        return None

    board = replay(opening_moves)
    return DrillSession(graph, player_color, node, opening_moves, board, selector)
