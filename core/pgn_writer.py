"""
Export of repertoire lines to PGN.
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import chess
import chess.pgn

from core.notation import from_notation
from core.repertoire import ROOT, RepertoireGraph

logger = logging.getLogger(__name__)


def line_to_game(moves: List[str], count: int, player_color: Optional[chess.Color] = None) -> chess.pgn.Game:
    """
    Build a PGN game for a single repertoire line.

    Raises:
        NotationError: if a move in the line is not legal in sequence
    """
    board = chess.Board()
    game = chess.pgn.Game()

    game.headers["Event"] = "Repertoire Line"
    game.headers["Site"] = "Chess Driller"
    game.headers["Date"] = datetime.now().strftime("%Y.%m.%d")
    if player_color is None:
        game.headers["White"] = "Repertoire"
        game.headers["Black"] = "Repertoire"
    else:
        game.headers["White"] = "Repertoire" if player_color == chess.WHITE else "Opponent"
        game.headers["Black"] = "Repertoire" if player_color == chess.BLACK else "Opponent"
    game.headers["Result"] = "*"
    game.comment = f"Games: {count}"

    node = game
    for san in moves:
        move = from_notation(san, board)
        node = node.add_variation(move)
        board.push(move)
    return game


def write_repertoire_pgn(
    graph: RepertoireGraph,
    path: Path,
    player_color: Optional[chess.Color] = None,
    prefix: Optional[List[str]] = None
) -> int:
    """
    Write every known line (below `prefix` if given) to a PGN file.

    Returns:
        Number of lines written
    """
    prefix = prefix or []
    start = graph.find_path(ROOT, prefix)
    if start is None:
        logger.warning(f"No known line through {' '.join(prefix)}, nothing to export")
        return 0

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    written = 0
    with open(path, "w", encoding="utf-8") as f:
        for moves, count in graph.lines(start, prefix):
            f.write(str(line_to_game(moves, count, player_color)))
            f.write("\n\n")
            written += 1

    logger.info(f"Wrote {written} lines to {path}")
    return written
