"""
Conversion between board moves and Standard Algebraic Notation.

Boards passed in are never modified; functions that need to play moves work
on a copy.
"""
from typing import Iterable, Optional

import chess

from core.errors import NotationError


def to_notation(move: chess.Move, board: chess.Board) -> Optional[str]:
    """Return the SAN of `move` on `board`, or None if the move is not legal there."""
    if not board.is_legal(move):
        return None
    return board.san(move)


def from_notation(san: str, board: chess.Board) -> chess.Move:
    """
    Resolve a SAN string to a legal move on `board`.

    Raises:
        NotationError: if the notation is malformed, illegal or ambiguous.
    """
    try:
        return board.parse_san(san)
    except chess.IllegalMoveError:
        raise NotationError(san, board.fen(), "illegal move")
    except chess.AmbiguousMoveError:
        raise NotationError(san, board.fen(), "ambiguous move")
    except chess.InvalidMoveError:
        raise NotationError(san, board.fen(), "invalid notation")


def replay(moves: Iterable[str], board: Optional[chess.Board] = None) -> chess.Board:
    """
    Play a sequence of SAN moves and return the resulting board.

    Starts from `board` (copied) or the standard initial position.
    """
    result = board.copy() if board is not None else chess.Board()
    for ply, san in enumerate(moves):
        try:
            move = from_notation(san, result)
        except NotationError as e:
            raise NotationError(san, e.fen, f"ply {ply + 1}: {e.reason}")
        result.push(move)
    return result
