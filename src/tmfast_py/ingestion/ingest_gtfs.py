"""
fetch, extract and parse a static gtfs schedule into a GtfsFeed

the data directory is laid out as:
    <data_dir>/gtfs.zip - downloaded schedule archive
    <data_dir>/gtfs/    - extracted table files

a single ingestion call assumes it owns data_dir, concurrent calls against the
same directory are not supported.
"""

import os
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

from tmfast_py.runtime_utils.process_logger import ProcessLogger
from tmfast_py.ingestion.error import FeedIOError, GTFSIngestException
from tmfast_py.ingestion.extract import extract_archive
from tmfast_py.ingestion.feed import GtfsFeed
from tmfast_py.ingestion.fetch import TRIMET_GTFS_URL, download_archive
from tmfast_py.ingestion.gtfs_schema_map import gtfs_schema, gtfs_schema_list
from tmfast_py.ingestion.table_parser import ParsedTable, RowPolicy, parse_table

ARCHIVE_FILENAME = "gtfs.zip"
EXTRACT_DIRNAME = "gtfs"


def archive_path(data_dir: str) -> str:
    """location of the downloaded archive inside of data_dir"""
    return os.path.join(data_dir, ARCHIVE_FILENAME)


def extract_dir(data_dir: str) -> str:
    """location of the extracted table files inside of data_dir"""
    return os.path.join(data_dir, EXTRACT_DIRNAME)


def missing_table_files(table_dir: str) -> List[str]:
    """gtfs table files that are not present as regular files in table_dir"""
    return [
        gtfs_file for gtfs_file in gtfs_schema_list() if not os.path.isfile(os.path.join(table_dir, gtfs_file))
    ]


def parse_table_file(table_dir: str, gtfs_table_file: str, policy: RowPolicy) -> ParsedTable:
    """parse a single extracted table file"""
    return parse_table(
        os.path.join(table_dir, gtfs_table_file),
        gtfs_schema(gtfs_table_file),
        table=gtfs_table_file,
        policy=policy,
    )


def parse_table_files(table_dir: str, policy: RowPolicy, max_workers: int = 1) -> Dict[str, ParsedTable]:
    """
    parse every gtfs table file in table_dir

    tables are independent of each other while parsing, so with max_workers
    greater than 1 they are parsed on a thread pool. results are always
    collected in gtfs_schema_list order.

    :return Dict[table file (ie. stop_times.txt): ParsedTable]
    """
    if max_workers <= 1:
        return {gtfs_file: parse_table_file(table_dir, gtfs_file, policy) for gtfs_file in gtfs_schema_list()}

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {
            gtfs_file: pool.submit(parse_table_file, table_dir, gtfs_file, policy) for gtfs_file in gtfs_schema_list()
        }

    return {gtfs_file: future.result() for gtfs_file, future in futures.items()}


# pylint: disable=too-many-arguments
def load_gtfs_feed(
    data_dir: str,
    use_cached: bool = False,
    *,
    url: str = TRIMET_GTFS_URL,
    app_id: Optional[str] = None,
    timeout: Optional[float] = None,
    policy: RowPolicy = RowPolicy.SKIP,
    max_workers: int = 1,
) -> GtfsFeed:
    """
    build a GtfsFeed from a schedule archive

    if use_cached is False the archive is downloaded to <data_dir>/gtfs.zip and
    extracted into <data_dir>/gtfs/ before parsing. if use_cached is True,
    whatever is already in <data_dir>/gtfs/ is parsed.

    :param data_dir: working directory for the archive and its tables
    :param use_cached: skip download and extraction
    :param url: location of the schedule archive
    :param app_id: application credential for the archive host
    :param timeout: seconds to wait on the archive host, None waits forever
    :param policy: treatment of malformed rows in every table
    :param max_workers: number of tables to parse at the same time

    :raise FeedNetworkError: archive could not be fetched
    :raise FeedIOError: archive could not be written or extracted, or a
        table file is missing or unreadable
    :raise FieldFormatError: a row is malformed and policy is FAIL_FAST
    """
    logger = ProcessLogger(
        "load_gtfs_feed",
        data_dir=data_dir,
        use_cached=use_cached,
        policy=policy.value,
        max_workers=max_workers,
    )
    logger.log_start()

    table_dir = extract_dir(data_dir)
    try:
        if not use_cached:
            download_archive(url, archive_path(data_dir), timeout=timeout, app_id=app_id)
            extract_archive(archive_path(data_dir), table_dir)

        missing = missing_table_files(table_dir)
        if missing:
            raise FeedIOError("parse", f"table files {missing} not found in {table_dir}")

        tables = parse_table_files(table_dir, policy, max_workers=max_workers)

    except GTFSIngestException as exception:
        logger.log_failure(exception)
        raise

    feed = GtfsFeed.from_tables(tables)

    logger.add_metadata(
        total_skipped_rows=feed.total_skipped,
        **{f"{table}_records": count for table, count in feed.record_counts().items()},
    )
    logger.log_complete()

    return feed


# pylint: enable=too-many-arguments
