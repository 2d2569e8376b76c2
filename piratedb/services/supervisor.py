# piratedb/services/supervisor.py

from __future__ import annotations

import signal
import threading
from typing import Any, Callable, Iterator

import httpx

from ..config import CrawlConfig, logger
from ..errors import FatalCrawlError
from .channel import Channel
from .extractor import Extractor, TorrentRecord
from .fetcher import Fetcher, build_client, get_latest_id
from .stats import CrawlStats
from .store import TorrentStore
from .worker import Worker
from .writer import Writer

# After an abort, threads blocked on network I/O get this long to notice.
ABORT_JOIN_TIMEOUT = 5.0

# SIGKILL cannot be caught, so a killed crawl never closes its store.
INTERRUPT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def id_range(start: int, count: int) -> Iterator[int]:
    """Identifiers ``start + 1`` through ``start + count``, ascending."""
    return iter(range(start + 1, start + count + 1))


def dispatch(ids: Channel[int], start: int, count: int) -> int:
    """
    Feeds the identifier range into ``ids``, one blocking send at a time.
    Returns how many identifiers were handed over, which is less than
    ``count`` only when the pipeline was aborted.
    """
    sent = 0
    for torrent_id in id_range(start, count):
        if not ids.send(torrent_id):
            break
        sent += 1
    return sent


class Supervisor:
    """
    Owns the lifecycle of one crawl: the store handle, both channels, the
    worker pool and the writer thread.

    The store is closed exactly once, either at the end of an orderly drain
    or by ``abort`` (interrupt signal, or a fatal error in strict mode).
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        client_factory: Callable[[CrawlConfig], httpx.Client] = build_client,
        extractor: Extractor | None = None,
        store: TorrentStore | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.config = config
        self.client_factory = client_factory
        self.extractor = extractor or Extractor()
        self.store = store
        self.sleep = sleep
        self.abort_event = threading.Event()
        self._fatal: BaseException | None = None
        self._fatal_lock = threading.Lock()

    def resolve_count(self) -> int:
        if self.config.count is not None:
            return self.config.count
        with self.client_factory(self.config) as client:
            return get_latest_id(client, self.config)

    def run(self, install_signals: bool = True) -> CrawlStats:
        """
        Crawls the configured range and returns the merged statistics.
        Raises FatalCrawlError when strict mode stopped the crawl.
        """
        count = self.resolve_count()
        if self.store is None:
            self.store = TorrentStore.open(
                self.config.db_path, self.config.fresh_store
            )

        previous_handlers = (
            self._install_signal_handlers() if install_signals else {}
        )
        try:
            stats = self._crawl(count)
        finally:
            for signum, handler in previous_handlers.items():
                signal.signal(signum, handler)
            self.close_store()

        if self._fatal is not None:
            raise self._fatal
        logger.info("[SUPERVISOR] %s", stats.summary())
        logger.info("Done.")
        return stats

    def _crawl(self, count: int) -> CrawlStats:
        ids: Channel[int] = Channel(self.abort_event)
        records: Channel[TorrentRecord] = Channel(self.abort_event)

        writer = Writer(self.store, self.config)
        writer_thread = self._start("writer", writer.run, records)

        workers = []
        worker_threads = []
        for i in range(self.config.runners):
            worker = Worker(
                f"runner-{i}",
                Fetcher(self.client_factory(self.config), self.config),
                self.extractor,
                self.config,
                self.abort_event,
                sleep=self.sleep,
            )
            workers.append(worker)
            worker_threads.append(self._start(worker.name, worker.run, ids, records))

        logger.info(
            "[SUPERVISOR] Crawling %d torrents from %d with %d runners.",
            count,
            self.config.start + 1,
            self.config.runners,
        )
        stats = CrawlStats(dispatched=dispatch(ids, self.config.start, count))
        ids.close(consumers=len(worker_threads))
        self._join(worker_threads)
        records.close()
        self._join([writer_thread])

        for worker in workers:
            stats.merge(worker.stats)
        return stats.merge(writer.stats)

    def _start(
        self, name: str, target: Callable[..., None], *args: Any
    ) -> threading.Thread:
        thread = threading.Thread(
            target=self._guarded, args=(target, *args), name=name, daemon=True
        )
        thread.start()
        return thread

    def _guarded(self, target: Callable[..., None], *args: Any) -> None:
        try:
            target(*args)
        except FatalCrawlError as exc:
            logger.critical("[SUPERVISOR] Fatal: %s", exc)
            self._fail(exc)
        except Exception as exc:
            logger.exception(
                "[SUPERVISOR] Thread %s crashed", threading.current_thread().name
            )
            self._fail(exc)

    def _fail(self, exc: BaseException) -> None:
        with self._fatal_lock:
            if self._fatal is None:
                self._fatal = exc
        self.abort_event.set()

    def _join(self, threads: list[threading.Thread]) -> None:
        for thread in threads:
            thread.join(ABORT_JOIN_TIMEOUT if self.abort_event.is_set() else None)

    def abort(self, reason: str) -> None:
        """Stops every stage without draining and closes the store."""
        logger.warning("[SUPERVISOR] Aborting crawl: %s", reason)
        self.abort_event.set()
        self.close_store()

    def close_store(self) -> None:
        if self.store is not None:
            self.store.close()

    def _install_signal_handlers(self) -> dict[int, Any]:
        if threading.current_thread() is not threading.main_thread():
            return {}
        return {
            signum: signal.signal(signum, self._on_signal)
            for signum in INTERRUPT_SIGNALS
        }

    def _on_signal(self, signum: int, frame: Any) -> None:
        self.abort(f"received {signal.Signals(signum).name}")
        raise SystemExit(0)
