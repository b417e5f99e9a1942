"""
Pytest configuration and shared fixtures for Chess Driller tests.
"""
import pytest

from core.repertoire import RepertoireGraph


@pytest.fixture
def sample_pgn() -> str:
    """Provide a Chess.com style PGN with clock comments."""
    return '''[Event "Live Chess"]
[Site "Chess.com"]
[Date "2024.01.01"]
[White "Player A"]
[Black "Player B"]
[Result "1-0"]
[TimeControl "600+5"]

1. e4 {[%clk 0:09:58]} 1... e5 {[%clk 0:09:57]} 2. Nf3 {[%clk 0:09:50]} 2... Nc6 {[%clk 0:09:49]}
3. Bb5 {[%clk 0:09:40]} 3... a6 {[%clk 0:09:30]} 1-0'''


@pytest.fixture
def multi_game_pgn() -> str:
    """Three games, one of them bullet."""
    return '''[Event "Live Chess"]
[White "Player A"]
[Black "Player B"]
[Result "1-0"]
[TimeControl "600"]

1. e4 e5 2. Nf3 Nc6 1-0

[Event "Live Chess"]
[White "Player B"]
[Black "Player A"]
[Result "0-1"]
[TimeControl "60"]

1. d4 d5 0-1

[Event "Live Chess"]
[White "Player A"]
[Black "Player C"]
[Result "1/2-1/2"]
[TimeControl "180+2"]

1. e4 c5 2. Nf3 d6 1/2-1/2
'''


@pytest.fixture
def scenario_games():
    """Corpus from the reference drill scenario."""
    return [
        ("e4", "e5", "Nf3"),
        ("e4", "e5", "Nf3", "Nc6"),
        ("d4", "d5"),
    ]


@pytest.fixture
def scenario_graph(scenario_games) -> RepertoireGraph:
    return RepertoireGraph.build(scenario_games)


@pytest.fixture
def branching_games():
    """A wider corpus with shared prefixes and several branch points."""
    return [
        ("e4", "e5", "Nf3", "Nc6", "Bb5", "a6"),
        ("e4", "e5", "Nf3", "Nc6", "Bb5", "Nf6"),
        ("e4", "e5", "Nf3", "Nc6", "Bc4"),
        ("e4", "e5", "Nf3", "Nf6"),
        ("e4", "c5", "Nf3", "d6", "d4"),
        ("e4", "c5", "Nc3"),
        ("d4", "Nf6", "c4", "e6"),
        ("d4", "d5", "c4"),
        ("c4",),
    ]


@pytest.fixture
def branching_graph(branching_games) -> RepertoireGraph:
    return RepertoireGraph.build(branching_games)
