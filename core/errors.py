"""
Exception types for the repertoire driller.

Recoverable drill outcomes (no known line, a deviation, the end of a line)
are plain return values and never raised.
"""
from typing import Optional, Sequence


class ChessDrillerError(Exception):
    """Base class for all application errors."""


class ConfigError(ChessDrillerError):
    """Configuration file is unreadable or malformed."""


class RepertoireLoadError(ChessDrillerError):
    """Persisted repertoire is unreadable or corrupt."""


class NotationError(ChessDrillerError, ValueError):
    """A SAN string could not be resolved against a board."""

    def __init__(self, san: str, fen: str, reason: str = ""):
        self.san = san
        self.fen = fen
        self.reason = reason
        message = f"cannot resolve '{san}' on {fen}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class BoardDivergedError(NotationError):
    """
    The live board no longer matches the line the repertoire graph implies.

    Raised when a move picked from the graph cannot be played on the session
    board. This is an internal invariant violation, not a user error.
    """

    def __init__(self, san: str, fen: str, history: Optional[Sequence[str]] = None, reason: str = ""):
        self.history = list(history or [])
        super().__init__(san, fen, reason)

    def __str__(self):
        line = " ".join(self.history) or "(start)"
        return f"board diverged from repertoire after {line}: {super().__str__()}"
