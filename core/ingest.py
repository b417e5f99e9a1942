"""
Turns downloaded PGN text into move sequences for the repertoire graph.
"""
import io
import logging
import re
from typing import Iterable, List, Optional, Tuple

import chess
import chess.pgn

from core.repertoire import RepertoireGraph

logger = logging.getLogger(__name__)

GameRecord = Tuple[str, ...]


def split_pgn(text: str) -> List[str]:
    """Split a multi-game PGN file into one string per game."""
    # Keep the '[Event ' delimiter with each game
    games = re.split(r'(?=\[Event )', text)
    return [game.strip() for game in games if game.strip()]


def game_to_record(game: chess.pgn.Game, max_plies: Optional[int] = None) -> GameRecord:
    """SAN moves of the game's mainline, optionally cut after `max_plies` half-moves."""
    board = game.board()
    moves = []
    for ply_index, move in enumerate(game.mainline_moves()):
        if max_plies is not None and ply_index >= max_plies:
            break
        moves.append(board.san(move))
        board.push(move)
    return tuple(moves)


def read_game_records(pgn_texts: Iterable[str], max_plies: Optional[int] = None) -> List[GameRecord]:
    """
    Parse PGN strings into game records.

    Games that fail to parse, use a chess variant or start from a custom
    position are skipped; they cannot share the repertoire's starting point.
    """
    records = []
    skipped = 0

    for pgn_text in pgn_texts:
        game = chess.pgn.read_game(io.StringIO(pgn_text))
        if game is None:
            skipped += 1
            continue

        event = game.headers.get("Event", "?")
        if game.errors:
            logger.warning(f"Skipping game '{event}': {game.errors[0]}")
            skipped += 1
            continue

        variant = game.headers.get("Variant", "Standard")
        if variant.lower() not in ("standard", "chess"):
            logger.warning(f"Skipping game '{event}': variant {variant}")
            skipped += 1
            continue

        if game.board().fen() != chess.STARTING_FEN:
            logger.warning(f"Skipping game '{event}': custom starting position")
            skipped += 1
            continue

        record = game_to_record(game, max_plies)
        if record:
            records.append(record)
        else:
            skipped += 1

    logger.info(f"Read {len(records)} games ({skipped} skipped)")
    return records


def build_repertoire(pgn_texts: Iterable[str], max_plies: Optional[int] = None) -> RepertoireGraph:
    return RepertoireGraph.build(read_game_records(pgn_texts, max_plies))
