"""
Chess Driller - command-line entry point.

Builds an opening repertoire from your own games and drills you on it.
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import chess

import config
from controllers.drill_controller import DrillController
from core.drill import MoveAssessment
from core.errors import ConfigError, RepertoireLoadError
from core.ingest import build_repertoire, split_pgn
from core.move_selectors import create_selector
from core.pgn_writer import write_repertoire_pgn
from core.repertoire import ROOT, RepertoireGraph
from services.game_history import ChessComClient

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="chess-driller",
        description="Drill your opening repertoire from your own games.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument(
        "--config", type=Path, default=None,
        help=f"Path to the JSON config file (default: {config.CONFIG_FILE})."
    )
    parser.add_argument(
        "--repertoire", type=Path, default=None,
        help="Path to the repertoire file (default: from config)."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch = subparsers.add_parser("fetch", help="Download games for the configured accounts and build the repertoire.")
    fetch.add_argument("--no-cache", action="store_true", help="Ignore cached downloads.")
    fetch.add_argument(
        "--months", type=int, default=None,
        help="Only fetch the most recent N months (default: from config, else all)."
    )

    build = subparsers.add_parser("build", help="Build the repertoire from local PGN files.")
    build.add_argument("pgn", type=Path, nargs="+", help="PGN files to read.")

    lines = subparsers.add_parser("lines", help="Show known continuations from a position.")
    lines.add_argument("--moves", type=str, default="", help="Moves in SAN format (e.g., 'e4 e5 Nf3').")

    export = subparsers.add_parser("export", help="Write every known line to a PGN file.")
    export.add_argument("output", type=Path, help="Output PGN file.")
    export.add_argument("--moves", type=str, default="", help="Only lines starting with these moves.")
    export.add_argument("--color", type=str, choices=["white", "black"], default=None)

    drill = subparsers.add_parser("drill", help="Practice the repertoire in the terminal.")
    drill.add_argument("--color", type=str, choices=["white", "black"], default="white",
                       help="The color you play (default: white).")
    drill.add_argument("--moves", type=str, default="", help="Start the drill after these moves.")

    return parser.parse_args(argv)


def get_color(name: Optional[str]) -> Optional[chess.Color]:
    if name is None:
        return None
    return chess.WHITE if name == "white" else chess.BLACK


def save_graph(graph: RepertoireGraph, path: Path):
    graph.save(path)
    print(f"Repertoire: {graph.total_games} games, {len(graph)} positions -> {path}")


def cmd_fetch(args, settings: config.Config) -> int:
    if not settings.accounts:
        print("No accounts configured. Set 'accounts' in the config file or CHESS_COM_ACCOUNTS.")
        return 1

    client = ChessComClient(user_agent=settings.user_agent, min_base_time=settings.min_base_time)
    months = args.months if args.months is not None else settings.months
    pgns = client.download_all_games(settings.accounts, months=months, use_cache=not args.no_cache)
    if not pgns:
        print("No games found for the configured accounts.")
        return 1

    save_graph(build_repertoire(pgns, settings.max_plies), settings.repertoire_path)
    return 0


def cmd_build(args, settings: config.Config) -> int:
    pgns = []
    for path in args.pgn:
        with open(path, "r", encoding="utf-8") as f:
            pgns.extend(split_pgn(f.read()))

    save_graph(build_repertoire(pgns, settings.max_plies), settings.repertoire_path)
    return 0


def cmd_lines(args, settings: config.Config) -> int:
    graph = RepertoireGraph.load(settings.repertoire_path)
    moves = args.moves.split()
    node = graph.find_path(ROOT, moves)
    if node is None:
        print(f"No known line through: {args.moves}")
        return 1

    children = graph.children_of(node)
    if not children:
        print("End of known theory.")
        return 0

    total = sum(children.values())
    for san, count in sorted(children.items(), key=lambda item: (-item[1], item[0])):
        print(f"  {san:<8} {count:>5}  ({count / total:.0%})")
    return 0


def cmd_export(args, settings: config.Config) -> int:
    graph = RepertoireGraph.load(settings.repertoire_path)
    written = write_repertoire_pgn(graph, args.output, get_color(args.color), args.moves.split())
    print(f"Wrote {written} lines to {args.output}")
    return 0 if written else 1


def cmd_drill(args, settings: config.Config) -> int:
    graph = RepertoireGraph.load(settings.repertoire_path)
    controller = DrillController(graph, create_selector(settings.bot_policy, settings.seed),
                                 get_color(args.color))

    for san in args.moves.split():
        played = len(controller.free_play_moves)
        controller.play_san(san)
        if len(controller.free_play_moves) == played:
            print(f"Illegal move in starting line: {san}")
            return 1

    if not controller.start_drill():
        print("Nothing to drill from this position yet.")
        return 1

    if controller.session is not None and controller.session.ply > len(controller.free_play_moves):
        print(f"Bot opens with {controller.session.history[-1]}")

    print("Enter moves in SAN or UCI. 'hint' shows known moves, 'quit' exits.")
    while controller.still_running():
        print()
        print(controller.board.unicode(invert_color=True, orientation=controller.player_color))
        try:
            text = input("Your move: ").strip()
        except EOFError:
            break
        if text in ("quit", "exit"):
            break
        if text == "hint":
            print("Known: " + ", ".join(sorted(controller.known_moves())))
            continue

        ply_before = controller.session.ply
        assessment = controller.play_san(text)
        if assessment is None:
            assessment = controller.play_uci(text)
        if assessment is None:
            print("Illegal move.")
            continue

        if assessment == MoveAssessment.DEVIATED:
            print(f"{text} is not in your repertoire. Known: {', '.join(sorted(controller.known_moves()))}")
        elif assessment == MoveAssessment.END_OF_LINE:
            break
        elif controller.session is None:
            print("Drill abandoned: the repertoire and the board disagree.")
            return 1
        elif controller.session.ply > ply_before + 1:
            print(f"Reply: {controller.session.history[-1]}")

    print("End of known theory.")
    return 0


COMMANDS = {
    "fetch": cmd_fetch,
    "build": cmd_build,
    "lines": cmd_lines,
    "export": cmd_export,
    "drill": cmd_drill,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    try:
        settings = config.load_config(args.config)
        if args.repertoire is not None:
            settings.repertoire_path = args.repertoire
        return COMMANDS[args.command](args, settings)
    except (ConfigError, RepertoireLoadError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
