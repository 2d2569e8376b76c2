# piratedb/config.py

import configparser
import logging
import os
from dataclasses import dataclass, replace
from typing import Any

# --- Constants ---
DEFAULT_BASE_URL = "https://thepiratebay.se"
DEFAULT_DB_PATH = "./thepirate.db"
DOCTYPE_MARKER = b"<!DOCTYPE html PUBLIC"
NOT_FOUND_MARKER = (
    b"<title>Not Found | The Pirate Bay - "
    b"The world's most resilient BitTorrent site</title>"
)
NOT_FOUND_WINDOW = 300
LOG_INTERVAL = 10000
DEBUG_LOG_INTERVAL = 10
DEFAULT_USER_AGENT = "piratedb/1.0"

# Setup basic logging
logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)
logging.getLogger("httpx").setLevel(logging.WARNING)


@dataclass(frozen=True)
class CrawlConfig:
    """Everything a crawl run needs, resolved from file, environment and CLI."""

    runners: int
    max_retries: int
    start: int = 0
    count: int | None = None
    base_url: str = DEFAULT_BASE_URL
    db_path: str = DEFAULT_DB_PATH
    backoff_seconds: float = 1.0
    timeout_seconds: float = 0.0
    user_agent: str = DEFAULT_USER_AGENT
    debug: bool = False

    @property
    def log_interval(self) -> int:
        return DEBUG_LOG_INTERVAL if self.debug else LOG_INTERVAL

    @property
    def fresh_store(self) -> bool:
        return self.start == 0

    def torrent_url(self, torrent_id: int) -> str:
        return f"{self.base_url}/torrent/{torrent_id}"

    @property
    def recent_url(self) -> str:
        return f"{self.base_url}/recent"


def debug_from_env() -> bool:
    return os.environ.get("DEBUG", "") != ""


def get_configuration(
    config_path: str = "config.ini", **overrides: Any
) -> CrawlConfig:
    """
    Builds the crawl configuration. Values from the optional [crawler] section
    of ``config_path`` are applied first, then any non-None keyword override
    (usually coming from the command line). The DEBUG environment variable
    turns on strict mode unless ``debug`` is overridden explicitly.
    """
    file_values = _load_crawler_section(config_path)
    values: dict[str, Any] = {"debug": debug_from_env()}
    values.update(file_values)
    values.update({k: v for k, v in overrides.items() if v is not None})

    missing = [key for key in ("runners", "max_retries") if key not in values]
    if missing:
        raise ValueError(f"Missing required setting(s): {', '.join(missing)}")

    config = CrawlConfig(**values)
    _validate(config)
    return replace(config, base_url=config.base_url.rstrip("/"))


def _load_crawler_section(config_path: str) -> dict[str, Any]:
    """Reads and type-converts the [crawler] section, if the file exists."""
    if not os.path.exists(config_path):
        return {}

    parser = configparser.ConfigParser()
    with open(config_path, encoding="utf-8") as f:
        parser.read_file(f)
    if not parser.has_section("crawler"):
        logger.info(f"No [crawler] section in '{config_path}'. Using defaults.")
        return {}

    section = parser["crawler"]
    values: dict[str, Any] = {}
    try:
        for key in ("runners", "max_retries", "start", "count"):
            if key in section:
                values[key] = section.getint(key)
        for key in ("backoff_seconds", "timeout_seconds"):
            if key in section:
                values[key] = section.getfloat(key)
        for key in ("base_url", "db_path", "user_agent"):
            if key in section:
                values[key] = section.get(key).strip()
        if "debug" in section:
            values["debug"] = section.getboolean("debug")
    except ValueError as e:
        raise ValueError(f"Invalid value in [crawler] section of '{config_path}': {e}")

    logger.info(f"[CONFIG] Crawler configuration loaded from '{config_path}'.")
    return values


def _validate(config: CrawlConfig) -> None:
    if config.runners < 1:
        raise ValueError("runners must be at least 1")
    if config.max_retries < 0:
        raise ValueError("max_retries cannot be negative")
    if config.start < 0:
        raise ValueError("start offset cannot be negative")
    if config.count is not None and config.count < 0:
        raise ValueError("count cannot be negative")
    if config.backoff_seconds < 0 or config.timeout_seconds < 0:
        raise ValueError("backoff_seconds and timeout_seconds cannot be negative")
    if not config.base_url.startswith(("http://", "https://")):
        raise ValueError(f"base_url must be an http(s) URL, got '{config.base_url}'")
