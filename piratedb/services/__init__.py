from .extractor import (
    DEFAULT_PATTERNS,
    ExtractionError,
    Extractor,
    FieldPatterns,
    TorrentRecord,
    parse_torrent,
)
from .fetcher import Fetcher, FetchError, LatestIdError, get_latest_id, is_not_found
from .stats import CrawlStats
from .store import TorrentStore
from .supervisor import Supervisor, dispatch, id_range

__all__ = [
    "DEFAULT_PATTERNS",
    "ExtractionError",
    "Extractor",
    "FieldPatterns",
    "TorrentRecord",
    "parse_torrent",
    "Fetcher",
    "FetchError",
    "LatestIdError",
    "get_latest_id",
    "is_not_found",
    "CrawlStats",
    "TorrentStore",
    "Supervisor",
    "dispatch",
    "id_range",
]
