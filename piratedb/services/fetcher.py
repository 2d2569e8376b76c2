# piratedb/services/fetcher.py

from __future__ import annotations

import re

import httpx

from ..config import (
    DOCTYPE_MARKER,
    NOT_FOUND_MARKER,
    NOT_FOUND_WINDOW,
    CrawlConfig,
    logger,
)

_LATEST_LINK_RE = re.compile(rb'<a href="/torrent/(\d+)/')


class FetchError(Exception):
    """The page could not be retrieved in a usable shape. Worth retrying."""


class LatestIdError(RuntimeError):
    """The listing page gave no usable identifier."""


def build_client(config: CrawlConfig) -> httpx.Client:
    """A client meant to live as long as the worker that owns it."""
    timeout = httpx.Timeout(config.timeout_seconds or None)
    return httpx.Client(
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": config.user_agent},
    )


def is_not_found(body: bytes) -> bool:
    return NOT_FOUND_MARKER in body[:NOT_FOUND_WINDOW]


class Fetcher:
    """Issues one GET per identifier on a persistent connection pool."""

    def __init__(self, client: httpx.Client, config: CrawlConfig) -> None:
        self.client = client
        self.config = config

    def fetch(self, torrent_id: int) -> bytes:
        url = self.config.torrent_url(torrent_id)
        try:
            response = self.client.get(url)
            body = response.read()
        except httpx.HTTPError as exc:
            raise FetchError(f"GET {url} failed: {exc}") from exc
        if not body.startswith(DOCTYPE_MARKER):
            raise FetchError(
                f"GET {url} -> {response.status_code}: unexpected document type"
            )
        return body

    def close(self) -> None:
        self.client.close()


def get_latest_id(client: httpx.Client, config: CrawlConfig) -> int:
    """
    Scrapes the "recent" listing for the newest torrent identifier. This is
    the default size of the crawl range.
    """
    try:
        response = client.get(config.recent_url)
        response.raise_for_status()
        body = response.read()
    except httpx.HTTPError as exc:
        raise LatestIdError(f"Could not load {config.recent_url}: {exc}") from exc

    match = _LATEST_LINK_RE.search(body)
    if match is None:
        raise LatestIdError(f"No torrent link found on {config.recent_url}")
    latest = int(match.group(1))
    logger.info("[FETCHER] Latest torrent id is %d", latest)
    return latest
