"""
Opening repertoire graph.

A trie of positions keyed by SAN move paths, built from a corpus of games.
Nodes live in a flat list and are addressed by integer id; the root (the
initial position) is always id 0. Lines that transpose into the same board
position stay on separate branches, since the drill is about move order.
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import config
from core.errors import RepertoireLoadError

logger = logging.getLogger(__name__)

ROOT = 0
FORMAT_VERSION = 1


@dataclass
class RepertoireNode:
    """One position in the graph: its outgoing edges and their visit counts."""
    children: Dict[str, int] = field(default_factory=dict)
    counts: Dict[str, int] = field(default_factory=dict)

    @property
    def is_leaf(self) -> bool:
        return not self.children


class RepertoireGraph:
    """
    Move tree of every line played in the ingested games.

    Built once via `insert`/`build` and treated as read-only afterwards;
    drill sessions only hold node ids into it.
    """

    def __init__(self):
        self._nodes: List[RepertoireNode] = [RepertoireNode()]
        self.total_games = 0

    # Construction

    def insert(self, moves: Iterable[str]) -> None:
        """Add one game's moves from the root, bumping the visit count of every edge."""
        node_id = ROOT
        inserted = False
        for san in moves:
            node = self._nodes[node_id]
            child_id = node.children.get(san)
            if child_id is None:
                child_id = len(self._nodes)
                self._nodes.append(RepertoireNode())
                node.children[san] = child_id
                node.counts[san] = 0
            node.counts[san] += 1
            node_id = child_id
            inserted = True
        if inserted:
            self.total_games += 1

    @classmethod
    def build(cls, games: Iterable[Sequence[str]]) -> "RepertoireGraph":
        """Build a graph from a collection of games, each an ordered SAN sequence."""
        graph = cls()
        for moves in games:
            graph.insert(moves)
        logger.info(f"Built repertoire from {graph.total_games} games ({len(graph)} positions)")
        return graph

    # Queries

    def __len__(self) -> int:
        return len(self._nodes)

    def is_empty(self) -> bool:
        return self._nodes[ROOT].is_leaf

    def children_of(self, node_id: int) -> Dict[str, int]:
        """Known moves from a node mapped to how many games played them. Empty for a leaf."""
        return dict(self._nodes[node_id].counts)

    def child(self, node_id: int, san: str) -> Optional[int]:
        return self._nodes[node_id].children.get(san)

    def find_path(self, node_id: int, moves: Iterable[str]) -> Optional[int]:
        """Follow `moves` from `node_id`. Returns None as soon as a move is unknown."""
        for san in moves:
            node_id = self._nodes[node_id].children.get(san)
            if node_id is None:
                return None
        return node_id

    def lines(self, node_id: int = ROOT, prefix: Sequence[str] = ()) -> Iterator[Tuple[List[str], int]]:
        """
        Yield every line from `node_id` down to a leaf.

        Each item is (moves, count) where moves starts with `prefix` and count is
        the visit count of the last edge in the line (the number of games that
        reached that leaf).
        """
        stack = [(node_id, list(prefix), 0)]
        while stack:
            current, moves, count = stack.pop()
            node = self._nodes[current]
            if node.is_leaf:
                if current != node_id:
                    yield moves, count
                continue
            # reversed so lines come out in SAN order
            for san in sorted(node.children, reverse=True):
                stack.append((node.children[san], moves + [san], node.counts[san]))

    def __eq__(self, other):
        """Same moves and visit counts along every path. Node ids and insertion order are ignored."""
        if not isinstance(other, RepertoireGraph):
            return NotImplemented
        stack = [(ROOT, ROOT)]
        while stack:
            a, b = stack.pop()
            mine, theirs = self._nodes[a], other._nodes[b]
            if mine.counts != theirs.counts:
                return False
            stack.extend((mine.children[san], theirs.children[san]) for san in mine.children)
        return True

    def __repr__(self):
        return f"<RepertoireGraph games={self.total_games} positions={len(self)}>"

    # Persistence

    def to_dict(self) -> dict:
        return {
            "version": FORMAT_VERSION,
            "total_games": self.total_games,
            "nodes": [
                {san: [child_id, node.counts[san]] for san, child_id in node.children.items()}
                for node in self._nodes
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RepertoireGraph":
        """
        Rebuild a graph from `to_dict` output, checking that it still forms a tree.

        Raises:
            RepertoireLoadError: on any structural problem.
        """
        if not isinstance(data, dict) or data.get("version") != FORMAT_VERSION:
            raise RepertoireLoadError(f"unsupported repertoire format: {data.get('version') if isinstance(data, dict) else data!r}")

        raw_nodes = data.get("nodes")
        if not isinstance(raw_nodes, list) or not raw_nodes:
            raise RepertoireLoadError("repertoire has no nodes")

        nodes: List[RepertoireNode] = []
        has_parent = [False] * len(raw_nodes)
        for node_id, raw in enumerate(raw_nodes):
            if not isinstance(raw, dict):
                raise RepertoireLoadError(f"node {node_id} is not a mapping")
            node = RepertoireNode()
            for san, edge in raw.items():
                if not (isinstance(edge, list) and len(edge) == 2
                        and all(isinstance(v, int) and not isinstance(v, bool) for v in edge)):
                    raise RepertoireLoadError(f"node {node_id} has a malformed edge '{san}'")
                child_id, count = edge
                if not 0 < child_id < len(raw_nodes):
                    raise RepertoireLoadError(f"node {node_id} edge '{san}' points to unknown node {child_id}")
                if count < 1:
                    raise RepertoireLoadError(f"node {node_id} edge '{san}' has visit count {count}")
                if has_parent[child_id]:
                    raise RepertoireLoadError(f"node {child_id} has more than one parent")
                has_parent[child_id] = True
                node.children[san] = child_id
                node.counts[san] = count
            nodes.append(node)

        orphans = [i for i in range(1, len(nodes)) if not has_parent[i]]
        if orphans:
            raise RepertoireLoadError(f"nodes unreachable from the root: {orphans[:5]}")

        # Every non-root node has exactly one parent, so the only way to miss
        # the root is a cycle detached from it.
        seen = 0
        stack = [ROOT]
        while stack:
            seen += 1
            stack.extend(nodes[stack.pop()].children.values())
        if seen != len(nodes):
            raise RepertoireLoadError("repertoire contains a cycle")

        graph = cls()
        graph._nodes = nodes
        total = data.get("total_games")
        graph.total_games = total if isinstance(total, int) else sum(nodes[ROOT].counts.values())
        return graph

    def save(self, path: Optional[Path] = None) -> Path:
        """Write the graph as JSON. Defaults to the configured repertoire file."""
        if path is None:
            path = config.DEFAULT_REPERTOIRE_PATH
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, ensure_ascii=False)
        logger.info(f"Saved repertoire ({len(self)} positions) to {path}")
        return path

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "RepertoireGraph":
        """
        Read a graph saved with `save`.

        Raises:
            RepertoireLoadError: if the file is missing, unreadable or corrupt.
        """
        if path is None:
            path = config.DEFAULT_REPERTOIRE_PATH
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise RepertoireLoadError(f"failed to read repertoire {path}: {e}") from e

        graph = cls.from_dict(data)
        logger.info(f"Loaded repertoire ({len(graph)} positions) from {path}")
        return graph

    @classmethod
    def load_or_empty(cls, path: Optional[Path] = None) -> "RepertoireGraph":
        """Like `load`, but a missing file gives an empty graph. Corrupt files still raise."""
        if path is None:
            path = config.DEFAULT_REPERTOIRE_PATH
        if not Path(path).exists():
            logger.info(f"No repertoire at {path}, starting empty")
            return cls()
        return cls.load(path)
