"""
Downloads game histories from the Chess.com public API.
"""
import json
import logging
import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, List, Optional

import requests

import config
from core.ingest import split_pgn

logger = logging.getLogger(__name__)

ARCHIVES_URL = "https://api.chess.com/pub/player/{username}/games/archives"


class ChessComClient:
    """
    Fetches PGNs for Chess.com accounts, month by month.

    Bullet games are dropped and clock comments stripped. Results are cached
    per account as JSON so repeated runs don't hit the API.
    """

    def __init__(
        self,
        user_agent: str = f"{config.APP_NAME}/{config.APP_VERSION}",
        cache_dir: Optional[Path] = None,
        min_base_time: int = config.BULLET_THRESHOLD,
        timeout: float = 30.0
    ):
        self.headers = {"User-Agent": user_agent}
        self.cache_dir = Path(cache_dir) if cache_dir is not None else config.CACHE_DIR
        self.min_base_time = min_base_time
        self.timeout = timeout

    # Cache

    def _cache_file(self, username: str) -> Path:
        return self.cache_dir / f"{username.lower()}.json"

    def _save_cache(self, username: str, games: List[str]) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        cache_data = {
            "timestamp": datetime.now().isoformat(),
            "games": games
        }
        with open(self._cache_file(username), "w", encoding="utf-8") as f:
            json.dump(cache_data, f, ensure_ascii=False, indent=2)

    def _load_cache(self, username: str, max_age_days: int = 1) -> Optional[List[str]]:
        """Return the stored PGNs for an account, or None when the cache is missing, stale or unreadable."""
        cache_file = self._cache_file(username)
        if not cache_file.exists():
            return None

        try:
            with open(cache_file, "r", encoding="utf-8") as f:
                cache_data = json.load(f)
            cache_time = datetime.fromisoformat(cache_data["timestamp"])
            games = cache_data["games"]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable cache for {username}: {e}")
            return None

        age = datetime.now() - cache_time
        if age > timedelta(days=max_age_days):
            logger.info(f"{username}: cached download is {age.days} days old, fetching again")
            return None

        logger.info(f"{username}: {len(games)} games from cache saved {cache_time:%Y-%m-%d %H:%M}")
        return games

    def clear_cache(self, username: Optional[str] = None) -> int:
        """Remove the cache for one account, or every cache file. Returns the number removed."""
        if username:
            cache_file = self._cache_file(username)
            if cache_file.exists():
                cache_file.unlink()
                return 1
            return 0

        if not self.cache_dir.exists():
            return 0
        cache_files = list(self.cache_dir.glob("*.json"))
        for cache_file in cache_files:
            cache_file.unlink()
        return len(cache_files)

    def list_cache(self) -> List[dict]:
        """Summary (username, games, timestamp) of every cache file."""
        if not self.cache_dir.exists():
            return []

        entries = []
        for cache_file in sorted(self.cache_dir.glob("*.json")):
            try:
                with open(cache_file, "r", encoding="utf-8") as f:
                    cache_data = json.load(f)
                entries.append({
                    "username": cache_file.stem,
                    "games": len(cache_data["games"]),
                    "timestamp": datetime.fromisoformat(cache_data["timestamp"]),
                })
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping unreadable cache file {cache_file.name}: {e}")
        return entries

    # API

    def archives(self, username: str) -> List[str]:
        """Monthly archive URLs for an account, oldest first."""
        response = requests.get(ARCHIVES_URL.format(username=username), headers=self.headers, timeout=self.timeout)
        response.raise_for_status()
        return response.json().get("archives", [])

    def _filter_games(self, raw_pgn: str) -> List[str]:
        games = []
        for game_text in split_pgn(raw_pgn):
            # Filter out bullet games using the TimeControl tag.
            time_control_match = re.search(r'\[TimeControl "(\d+)(?:\+(\d+))?"\]', game_text)
            if time_control_match and int(time_control_match.group(1)) < self.min_base_time:
                continue

            # Remove clock times from moves.
            game_text = re.sub(r' ?\{\[%clk [^\]]+\]\}', '', game_text)
            games.append(game_text)
        return games

    def download_games(
        self,
        username: str,
        months: Optional[int] = None,
        use_cache: bool = True,
        cache_max_age_days: int = 1
    ) -> List[str]:
        """
        Download an account's games as PGN strings.

        Args:
            username: Chess.com username
            months: Only fetch the most recent N monthly archives
            use_cache: Whether to use cached games if available
            cache_max_age_days: Maximum age of cache in days before refreshing
        """
        if use_cache:
            cached_games = self._load_cache(username, cache_max_age_days)
            if cached_games is not None:
                return cached_games

        logger.info(f"Downloading games for {username}...")
        try:
            archive_urls = self.archives(username)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to list archives for {username}: {e}")
            return []

        if months is not None:
            archive_urls = archive_urls[-months:] if months > 0 else []

        collected_pgns = []
        for url in archive_urls:
            try:
                response = requests.get(f"{url}/pgn", headers=self.headers, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                logger.warning(f"Error fetching {url}: {e}")
                continue
            collected_pgns.extend(self._filter_games(response.text))

        if use_cache:
            self._save_cache(username, collected_pgns)

        logger.info(f"Downloaded {len(collected_pgns)} games for {username}")
        return collected_pgns

    def download_all_games(self, accounts: Iterable[str], **kwargs) -> List[str]:
        """Games for every account, in account order."""
        games = []
        for username in accounts:
            games.extend(self.download_games(username, **kwargs))
        return games
