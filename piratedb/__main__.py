# piratedb/__main__.py

import argparse
import logging
import sys

from piratedb.config import get_configuration, logger
from piratedb.errors import FatalCrawlError
from piratedb.services.fetcher import LatestIdError
from piratedb.services.supervisor import Supervisor


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="piratedb",
        description="Crawl torrent detail pages into an SQLite database.",
    )
    parser.add_argument("runners", type=int, help="Number of parallel fetchers")
    parser.add_argument(
        "max_retries", type=int, help="Retries per torrent after the first attempt"
    )
    parser.add_argument(
        "start",
        type=int,
        nargs="?",
        default=None,
        help="Resume after this id (0 recreates the database)",
    )
    parser.add_argument(
        "--count", type=int, help="Torrents to crawl (default: latest known id)"
    )
    parser.add_argument("--db", dest="db_path", help="SQLite database path")
    parser.add_argument("--base-url", dest="base_url", help="Site root URL")
    parser.add_argument(
        "--config",
        default="config.ini",
        help="Optional ini file with a [crawler] section",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Strict mode: stop on the first failure (also enabled by $DEBUG)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Parses arguments, runs one crawl and maps its outcome to an exit status.
    """
    args = build_parser().parse_args(argv)

    try:
        config = get_configuration(
            args.config,
            runners=args.runners,
            max_retries=args.max_retries,
            start=args.start,
            count=args.count,
            db_path=args.db_path,
            base_url=args.base_url,
            debug=args.debug,
        )
    except ValueError as e:
        logger.critical(f"Invalid configuration: {e}")
        return 1

    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Strict mode enabled.")

    try:
        Supervisor(config).run()
    except LatestIdError as e:
        logger.critical(f"Could not determine the crawl range: {e}")
        return 1
    except FatalCrawlError as e:
        logger.critical(f"Crawl stopped: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
