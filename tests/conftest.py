import sys
import threading
from pathlib import Path

import httpx
import pytest

# Ensure root path is available for imports
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from piratedb.config import CrawlConfig  # noqa: E402

BASE_URL = "https://tpb.example"

_HEAD = (
    '<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.0 Strict//EN" '
    '"http://www.w3.org/TR/xhtml1/DTD/xhtml1-strict.dtd">\n'
    "<html><head><title>{title} (download torrent) - TPB</title></head>\n<body>\n"
)

# Field blocks of a detail page, in page order. Each can be dropped or
# replaced by the make_page fixture.
_BLOCKS = {
    "title": '<div id="title">\n    {title}\n</div>\n<dl class="col1">\n',
    "category": (
        "<dt>Type:</dt>\n"
        '<dd><a href="/browse/303" title="More from this category">{category}</a></dd>\n'
    ),
    "files_num": (
        "<dt>Files:</dt>\n"
        '<dd><a href="/ajax_details_filelist.php?id=1" title="Files">{files_num}</a></dd>\n'
    ),
    "size": "<dt>Size:</dt>\n<dd>5.69&nbsp;GiB ({size}&nbsp;Bytes)</dd>\n",
    "uploaded": "<dt>Uploaded:</dt>\n<dd>{uploaded}</dd>\n",
    "uploader": (
        "<dt>By:</dt>\n<dd>\n"
        '<a href="/user/{uploader}/" title="Browse {uploader}">{uploader}</a>\n</dd>\n'
    ),
    "seeders": "<dt>Seeders:</dt>\n<dd>{seeders}</dd>\n",
    "leechers": "<dt>Leechers:</dt>\n<dd>{leechers}</dd>\n</dl>\n",
    "magnet": (
        '<div class="download">\n'
        "<a style=\"background-image: url('/static/img/icons/icon-magnet.gif');\" "
        'href="{magnet}" title="Get this torrent">Get this torrent</a>\n</div>\n'
    ),
    "description": '<div class="nfo">\n<pre>{description}</pre>\n</div>\n',
}

SAMPLE_VALUES = {
    "title": "Ubuntu 24.04 Desktop &amp; Server amd64",
    "category": "Applications &gt; UNIX",
    "files_num": "3",
    "size": "6114656256",
    "uploaded": "2024-04-25 16:01:02 GMT",
    "uploader": "canonical",
    "seeders": "1234",
    "leechers": "56",
    "magnet": "magnet:?xt=urn:btih:3f9aac158c7de8dfcab171ea58a17aabdf7fbc93&amp;dn=ubuntu",
    "description": (
        "  Official <a href=\"https://ubuntu.com\" rel=\"nofollow\">Ubuntu</a> "
        "release &quot;Noble Numbat&quot;.\n"
    ),
}

NOT_FOUND_PAGE = (
    '<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.0 Strict//EN" '
    '"http://www.w3.org/TR/xhtml1/DTD/xhtml1-strict.dtd">\n'
    "<html><head><title>Not Found | The Pirate Bay - "
    "The world's most resilient BitTorrent site</title></head>\n"
    "<body><h2>Not Found (aka 404)</h2></body></html>\n"
).encode()


def build_page(omit: tuple[str, ...] = (), **values: str) -> bytes:
    merged = {**SAMPLE_VALUES, **values}
    body = _HEAD.format(title=merged["title"])
    for name, block in _BLOCKS.items():
        if name not in omit:
            body += block.format(**merged)
    return (body + "</body></html>\n").encode()


class FakeResponse:
    def __init__(self, content: bytes, status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code

    def read(self) -> bytes:
        return self.content

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            request = httpx.Request("GET", BASE_URL)
            response = httpx.Response(self.status_code, request=request)
            raise httpx.HTTPStatusError("error", request=request, response=response)


class FakeClient:
    """
    Stand-in for httpx.Client. ``routes`` maps a URL to either a response
    body, an exception instance, or a list of those consumed in order.
    """

    def __init__(self, routes: dict | None = None, default=None) -> None:
        self.routes = dict(routes or {})
        self.default = default
        self.calls: list[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def __enter__(self) -> "FakeClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def get(self, url: str) -> FakeResponse:
        with self._lock:
            self.calls.append(url)
            outcome = self.routes.get(url, self.default)
            if isinstance(outcome, list):
                outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            return FakeResponse(b"", status_code=404)
        return FakeResponse(outcome)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_page():
    return build_page


@pytest.fixture
def sample_page() -> bytes:
    return build_page()


@pytest.fixture
def not_found_page() -> bytes:
    return NOT_FOUND_PAGE


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "torrents.db"


@pytest.fixture
def make_config(db_path):
    def _make(**overrides) -> CrawlConfig:
        values = {
            "runners": 2,
            "max_retries": 2,
            "start": 0,
            "count": 1,
            "base_url": BASE_URL,
            "db_path": str(db_path),
            "backoff_seconds": 0.0,
        }
        values.update(overrides)
        return CrawlConfig(**values)

    return _make


@pytest.fixture
def config(make_config) -> CrawlConfig:
    return make_config()


@pytest.fixture
def fake_client():
    return FakeClient


@pytest.fixture
def torrent_url():
    def _url(torrent_id: int) -> str:
        return f"{BASE_URL}/torrent/{torrent_id}"

    return _url
