"""
Application configuration.
"""
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from core.errors import ConfigError
from core.move_selectors import POLICIES, WEIGHTED

# Load .env file
load_dotenv()

# Application info
APP_NAME = "Chess Driller"
APP_VERSION = "0.1.0"

# Directories
DATA_DIR = Path(os.getenv("CHESS_DRILLER_HOME", Path.home() / ".chess-driller"))
CACHE_DIR = DATA_DIR / "game_cache"
CONFIG_FILE = DATA_DIR / "config.json"
DEFAULT_REPERTOIRE_PATH = DATA_DIR / "repertoire.json"

# Ingest defaults
DEFAULT_MAX_PLIES = 30
BULLET_THRESHOLD = 180  # seconds of base time


@dataclass
class Config:
    """User settings for building and drilling the repertoire."""
    accounts: List[str] = field(default_factory=list)
    repertoire_path: Path = DEFAULT_REPERTOIRE_PATH
    bot_policy: str = WEIGHTED
    seed: Optional[int] = None
    max_plies: Optional[int] = DEFAULT_MAX_PLIES
    months: Optional[int] = None
    min_base_time: int = BULLET_THRESHOLD
    user_agent: str = f"{APP_NAME}/{APP_VERSION}"


def _expect(data: dict, key: str, types, allow_none: bool = False):
    value = data[key]
    if value is None and allow_none:
        return value
    if isinstance(value, bool) or not isinstance(value, types):
        raise ConfigError(f"config field '{key}' has invalid value {value!r}")
    return value


def load_config(path: Optional[Path] = None) -> Config:
    """
    Load settings from the JSON config file and the environment.

    A missing file gives the defaults. CHESS_COM_ACCOUNTS (comma separated)
    overrides the account list and EMAIL is added to the API user agent.

    Raises:
        ConfigError: if the file exists but cannot be read or is malformed.
    """
    path = Path(path) if path is not None else CONFIG_FILE
    config = Config()

    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ConfigError(f"failed to read config {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"config {path} must be a JSON object")

        if "accounts" in data:
            accounts = _expect(data, "accounts", list)
            if not all(isinstance(a, str) and a for a in accounts):
                raise ConfigError("config field 'accounts' must be a list of account names")
            config.accounts = list(accounts)
        if "repertoire_path" in data:
            config.repertoire_path = Path(_expect(data, "repertoire_path", str)).expanduser()
        if "bot_policy" in data:
            config.bot_policy = _expect(data, "bot_policy", str)
        if "seed" in data:
            config.seed = _expect(data, "seed", int, allow_none=True)
        if "max_plies" in data:
            config.max_plies = _expect(data, "max_plies", int, allow_none=True)
        if "months" in data:
            config.months = _expect(data, "months", int, allow_none=True)
        if "min_base_time" in data:
            config.min_base_time = _expect(data, "min_base_time", int)

    if config.bot_policy not in POLICIES:
        raise ConfigError(f"unknown bot_policy '{config.bot_policy}', expected one of {', '.join(POLICIES)}")

    env_accounts = os.getenv("CHESS_COM_ACCOUNTS")
    if env_accounts:
        config.accounts = [a.strip() for a in env_accounts.split(",") if a.strip()]

    email = os.getenv("EMAIL")
    if email:
        config.user_agent = f"{config.user_agent} ({email})"

    return config
