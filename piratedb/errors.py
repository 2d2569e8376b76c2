# piratedb/errors.py


class FatalCrawlError(RuntimeError):
    """
    Raised in strict (debug) mode where a normal run would log and move on.
    It stops the whole pipeline instead of a single identifier.
    """

    def __init__(self, torrent_id: int, message: str) -> None:
        super().__init__(f"torrent {torrent_id}: {message}")
        self.torrent_id = torrent_id
