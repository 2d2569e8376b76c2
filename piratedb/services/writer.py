# piratedb/services/writer.py

from __future__ import annotations

import sqlite3

from ..config import CrawlConfig, logger
from ..errors import FatalCrawlError
from .channel import Channel
from .extractor import TorrentRecord
from .stats import CrawlStats
from .store import TorrentStore


class Writer:
    """Sole consumer of the record channel and sole mutator of the store."""

    def __init__(self, store: TorrentStore, config: CrawlConfig) -> None:
        self.store = store
        self.config = config
        self.stats = CrawlStats()

    def run(self, records: Channel[TorrentRecord]) -> None:
        for record in records:
            self.write(record)
        logger.info("[WRITER] Done.")

    def write(self, record: TorrentRecord) -> bool:
        try:
            self.store.insert(record)
        except sqlite3.Error as exc:
            self.stats.rejected += 1
            if self.config.debug:
                raise FatalCrawlError(record.id, f"sql {exc}") from exc
            logger.error("[WRITER] ERROR: torrent %d: sql %s", record.id, exc)
            return False
        self.stats.inserted += 1
        return True
