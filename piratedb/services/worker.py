# piratedb/services/worker.py

from __future__ import annotations

import threading
from typing import Callable

from ..config import CrawlConfig, logger
from ..errors import FatalCrawlError
from .channel import Channel
from .extractor import ExtractionError, Extractor, TorrentRecord
from .fetcher import Fetcher, FetchError, is_not_found
from .stats import CrawlStats


class Worker:
    """
    Turns identifiers into records: fetch with bounded retries, skip missing
    torrents, extract, and hand the result to the writer.

    Terminal outcomes per identifier are emitted, skipped (not-found page),
    failed (retries exhausted) and malformed (extraction error). Only emitted
    identifiers produce anything downstream.
    """

    def __init__(
        self,
        name: str,
        fetcher: Fetcher,
        extractor: Extractor,
        config: CrawlConfig,
        abort: threading.Event,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.name = name
        self.fetcher = fetcher
        self.extractor = extractor
        self.config = config
        self.stats = CrawlStats()
        self._abort = abort
        self._sleep = sleep or self._wait

    def run(
        self, ids: Channel[int], records: Channel[TorrentRecord]
    ) -> None:
        try:
            for torrent_id in ids:
                if torrent_id % self.config.log_interval == 0:
                    logger.info("[WORKER] Processing torrent %d", torrent_id)
                self.stats.processed += 1
                record = self.process(torrent_id)
                if record is not None and not records.send(record):
                    break
        finally:
            self.fetcher.close()
        logger.info("[WORKER] %s done.", self.name)

    def process(self, torrent_id: int) -> TorrentRecord | None:
        """Runs one identifier through the state machine."""
        body = self._fetch_with_retry(torrent_id)
        if body is None:
            return None

        if is_not_found(body):
            self.stats.skipped += 1
            return None

        try:
            record = self.extractor.extract(body)
        except ExtractionError as exc:
            self.stats.malformed += 1
            if self.config.debug:
                raise FatalCrawlError(torrent_id, str(exc)) from exc
            logger.error("[WORKER] ERROR: torrent %d: %s", torrent_id, exc)
            return None

        record.id = torrent_id
        self.stats.emitted += 1
        return record

    def _fetch_with_retry(self, torrent_id: int) -> bytes | None:
        max_retries = self.config.max_retries
        for attempt in range(1, max_retries + 2):
            try:
                return self.fetcher.fetch(torrent_id)
            except FetchError as exc:
                if attempt > max_retries or self._abort.is_set():
                    break
                self.stats.retried += 1
                logger.debug(
                    "[WORKER] Retry torrent %d (%d): %s", torrent_id, attempt, exc
                )
                self._sleep(attempt * self.config.backoff_seconds)

        self.stats.failed += 1
        if self.config.debug:
            raise FatalCrawlError(torrent_id, "retries exhausted")
        logger.error("[WORKER] Failed torrent %d", torrent_id)
        return None

    def _wait(self, seconds: float) -> None:
        self._abort.wait(seconds)
