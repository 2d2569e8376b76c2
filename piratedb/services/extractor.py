# piratedb/services/extractor.py

from __future__ import annotations

import html
import re
from dataclasses import dataclass, fields
from datetime import datetime, timezone

UPLOADED_FORMAT = "%Y-%m-%d %H:%M:%S %Z"
_INT64_MAX = 2**63 - 1

_STRIP_TAGS_RE = re.compile(rb"<.+?>", re.DOTALL)


class ExtractionError(ValueError):
    """A field was missing or could not be decoded. Never worth retrying."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field} {reason}")
        self.field = field
        self.reason = reason


@dataclass
class TorrentRecord:
    """A fully validated torrent detail page."""

    title: str
    category: str
    size: int
    seeders: int
    leechers: int
    uploaded: datetime
    uploader: str
    files_num: int
    description: str
    magnet: str
    id: int = 0

    def as_row(self) -> tuple:
        """Column order of the Torrents table."""
        return (
            self.id,
            self.title,
            self.category,
            self.size,
            self.seeders,
            self.leechers,
            self.uploaded.isoformat(sep=" "),
            self.uploader,
            self.files_num,
            self.description,
            self.magnet,
        )


@dataclass(frozen=True)
class FieldPatterns:
    """
    One compiled pattern per extracted field, in the order fields are
    reported. Each pattern must expose the value in its first group.
    """

    title: re.Pattern[bytes] = re.compile(rb'<div id="title">\s*(.+?)\s*</div>')
    category: re.Pattern[bytes] = re.compile(
        rb"<dt>Type:</dt>\s*<dd><a[^>]*>(.+?)</a></dd>"
    )
    size: re.Pattern[bytes] = re.compile(
        rb"<dt>Size:</dt>.*?\((\d+)&nbsp;Bytes\)</dd>", re.DOTALL
    )
    seeders: re.Pattern[bytes] = re.compile(
        rb"<dt>Seeders:</dt>.*?(\d+)</dd>", re.DOTALL
    )
    leechers: re.Pattern[bytes] = re.compile(
        rb"<dt>Leechers:</dt>.*?(\d+)</dd>", re.DOTALL
    )
    uploaded: re.Pattern[bytes] = re.compile(rb"<dt>Uploaded:</dt>\s*<dd>(.+?)</dd>")
    uploader: re.Pattern[bytes] = re.compile(
        rb"<dt>By:</dt>\s*<dd>\s*<[ai][^>]*>(.+?)</[ai]>"
    )
    files_num: re.Pattern[bytes] = re.compile(
        rb"<dt>Files:</dt>\s*<dd>.+?(\d+)</a></dd>", re.DOTALL
    )
    description: re.Pattern[bytes] = re.compile(
        rb'<div class="nfo">\s*<pre>(.+?)</pre>', re.DOTALL
    )
    magnet: re.Pattern[bytes] = re.compile(
        rb'href="(magnet:.+?)" title="Get this torrent"'
    )

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]


DEFAULT_PATTERNS = FieldPatterns()


def _text(raw: bytes) -> str:
    return html.unescape(raw.decode("utf-8", errors="replace"))


def _description(raw: bytes) -> str:
    return html.unescape(
        _STRIP_TAGS_RE.sub(b"", raw).strip().decode("utf-8", errors="replace")
    )


def _int64(raw: bytes) -> int:
    value = int(raw.decode("ascii"), 10)
    if not -_INT64_MAX - 1 <= value <= _INT64_MAX:
        raise ValueError("out of 64-bit range")
    return value


def _timestamp(raw: bytes) -> datetime:
    parsed = datetime.strptime(raw.decode("ascii").strip(), UPLOADED_FORMAT)
    return parsed.replace(tzinfo=timezone.utc)


_DECODERS = {
    "title": _text,
    "category": _text,
    "size": _int64,
    "seeders": _int64,
    "leechers": _int64,
    "uploaded": _timestamp,
    "uploader": _text,
    "files_num": _int64,
    "description": _description,
    "magnet": _text,
}


class Extractor:
    """
    Pulls a TorrentRecord out of a detail page. Holds nothing but its pattern
    table, so a single instance can be shared across worker threads.
    """

    def __init__(self, patterns: FieldPatterns = DEFAULT_PATTERNS) -> None:
        self.patterns = patterns

    def extract(self, data: bytes) -> TorrentRecord:
        """
        Matches every field against ``data`` in declaration order and raises
        ExtractionError for the first one that is missing or malformed.
        """
        values = {}
        for name in FieldPatterns.field_names():
            match = getattr(self.patterns, name).search(data)
            if match is None:
                raise ExtractionError(name, "not found")
            try:
                values[name] = _DECODERS[name](match.group(1))
            except (ValueError, UnicodeDecodeError):
                raise ExtractionError(name, "malformed") from None
        return TorrentRecord(**values)


def parse_torrent(
    data: bytes, patterns: FieldPatterns = DEFAULT_PATTERNS
) -> TorrentRecord:
    return Extractor(patterns).extract(data)
