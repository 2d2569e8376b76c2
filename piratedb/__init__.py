"""Crawl a torrent index's detail pages into an SQLite database."""

__version__ = "1.0.0"
