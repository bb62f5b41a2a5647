#!/usr/bin/env python

import argparse
import logging
import os
import sys
import tempfile
from typing import List, Optional

from tmfast_py.runtime_utils.env_validation import validate_environment
from tmfast_py.runtime_utils.process_logger import ProcessLogger
from tmfast_py.ingestion.fetch import TRIMET_GTFS_URL
from tmfast_py.ingestion.ingest_gtfs import load_gtfs_feed
from tmfast_py.ingestion.table_parser import RowPolicy

logging.getLogger().setLevel("INFO")

DESCRIPTION = """Entry Point For GTFS Schedule Ingestion"""


def default_data_dir(data_dir: Optional[str] = None) -> str:
    """data_dir if set, otherwise <system temp>/tmfast"""
    return data_dir or os.path.join(tempfile.gettempdir(), "tmfast")


def parse_args(args: List[str], data_dir: Optional[str] = None) -> argparse.Namespace:
    """
    parse args for running this entrypoint script

    :param data_dir: default for --data-dir, from TMFAST_DATA_DIR
    """
    parser = argparse.ArgumentParser(description=DESCRIPTION)
    parser.add_argument(
        "--data-dir",
        default=default_data_dir(data_dir),
        dest="data_dir",
        help="working directory for the schedule archive and its tables",
    )
    parser.add_argument(
        "--url",
        default=TRIMET_GTFS_URL,
        dest="url",
        help="location of the schedule archive",
    )
    parser.add_argument(
        "--use-cached",
        action="store_true",
        dest="use_cached",
        help="parse previously extracted tables instead of downloading",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        dest="fail_fast",
        help="fail on the first malformed row instead of skipping it",
    )
    parser.add_argument(
        "--timeout",
        default=None,
        type=float,
        dest="timeout",
        help="seconds to wait on the archive host",
    )
    parser.add_argument(
        "--workers",
        default=1,
        type=int,
        dest="workers",
        help="number of tables to parse at the same time",
    )

    return parser.parse_args(args)


def main(args: argparse.Namespace, app_id: Optional[str] = None) -> None:
    """ingest a schedule and log what was loaded"""
    main_process_logger = ProcessLogger("main", **vars(args))
    main_process_logger.log_start()

    policy = RowPolicy.FAIL_FAST if args.fail_fast else RowPolicy.SKIP

    feed = load_gtfs_feed(
        args.data_dir,
        use_cached=args.use_cached,
        url=args.url,
        app_id=app_id,
        timeout=args.timeout,
        policy=policy,
        max_workers=args.workers,
    )

    main_process_logger.add_metadata(
        total_skipped_rows=feed.total_skipped,
        **feed.record_counts(),
    )
    main_process_logger.log_complete()


def start() -> None:
    """configure and start the schedule ingestion process"""
    # configure the environment
    os.environ["SERVICE_NAME"] = "gtfs_ingestion"

    environment = validate_environment(
        required_variables=["SERVICE_NAME"],
        private_variables=["TRIMET_APPID"],
        optional_variables=["TRIMET_APPID", "TMFAST_DATA_DIR"],
    )

    # parse arguments from the command line
    parsed_args = parse_args(sys.argv[1:], data_dir=environment.get("TMFAST_DATA_DIR"))

    # run main method
    main(parsed_args, app_id=environment.get("TRIMET_APPID"))


if __name__ == "__main__":
    start()
