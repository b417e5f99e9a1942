"""
Reply selection strategies for the drill bot.

The bot only ever plays moves already in the repertoire; these strategies
decide which known continuation it picks when there is more than one.
"""
import logging
import random
from abc import ABC, abstractmethod
from typing import Dict, Optional

WEIGHTED = "weighted"
MOST_PLAYED = "most_played"
POLICIES = (WEIGHTED, MOST_PLAYED)

logger = logging.getLogger(__name__)


class MoveSelector(ABC):
    """Abstract base class for reply selection strategies."""

    @abstractmethod
    def select_move(self, candidates: Dict[str, int]) -> Optional[str]:
        """
        Pick one move from the known continuations.

        Args:
            candidates: SAN moves mapped to how many games played them

        Returns:
            The chosen SAN, or None if there are no candidates
        """
        pass


class MostPlayedMoveSelector(MoveSelector):
    """Always plays the most frequent continuation. Ties go to the first SAN alphabetically."""

    def select_move(self, candidates: Dict[str, int]) -> Optional[str]:
        if not candidates:
            return None
        return min(candidates, key=lambda san: (-candidates[san], san))


class WeightedMoveSelector(MoveSelector):
    """
    Picks a continuation at random, weighted by visit count.

    A line played in 9 of 10 games comes up about 90% of the time. The random
    source is injected so that drills can be replayed with a fixed seed.
    """

    def __init__(self, rng: Optional[random.Random] = None, seed: Optional[int] = None):
        self.rng = rng or random.Random(seed)
        self.seed = seed

    def select_move(self, candidates: Dict[str, int]) -> Optional[str]:
        if not candidates:
            return None
        if len(candidates) == 1:
            return next(iter(candidates))

        moves = sorted(candidates)
        return self.rng.choices(moves, weights=[candidates[san] for san in moves], k=1)[0]


def create_selector(policy: str = WEIGHTED, seed: Optional[int] = None) -> MoveSelector:
    """
    Factory for the configured bot policy.

    Args:
        policy: "weighted" or "most_played"
        seed: Seed for the weighted selector's random source. When None a seed
            is drawn once and logged, so the drill can be replayed by putting
            it in the config.
    """
    if policy == WEIGHTED:
        if seed is None:
            seed = random.SystemRandom().randrange(2 ** 32)
            logger.info(f"Weighted bot seeded with {seed}")
        return WeightedMoveSelector(random.Random(seed), seed)
    if policy == MOST_PLAYED:
        return MostPlayedMoveSelector()
    raise ValueError(f"unknown bot policy '{policy}', expected one of {', '.join(POLICIES)}")
