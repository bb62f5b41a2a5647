from dataclasses import dataclass, field
from typing import Dict, Mapping

import dataframely as dy
import polars as pl

from tmfast_py.ingestion.gtfs_schema_map import (
    CalendarDates,
    RouteDirections,
    Routes,
    Shapes,
    StopTimes,
    Stops,
    Transfers,
    Trips,
    gtfs_schema_list,
    table_name,
)
from tmfast_py.ingestion.table_parser import ParsedTable


# pylint: disable=too-many-instance-attributes
@dataclass(frozen=True)
class GtfsFeed:
    """
    one parsed snapshot of a static gtfs schedule

    each table is a polars DataFrame validated against its dataframely schema,
    with rows in the order they appear in the source file. foreign keys
    between tables are not checked.

    skipped_rows maps each table file (ie. stop_times.txt) to the number of
    source rows that were dropped as malformed.
    """

    trips: dy.DataFrame[Trips]
    routes: dy.DataFrame[Routes]
    route_directions: dy.DataFrame[RouteDirections]
    stop_times: dy.DataFrame[StopTimes]
    stops: dy.DataFrame[Stops]
    transfers: dy.DataFrame[Transfers]
    shapes: dy.DataFrame[Shapes]
    calendar_dates: dy.DataFrame[CalendarDates]
    skipped_rows: Mapping[str, int] = field(default_factory=dict)

    @classmethod
    def from_tables(cls, tables: Mapping[str, ParsedTable]) -> "GtfsFeed":
        """
        assemble a feed from parsed tables keyed by table file name

        every table file in gtfs_schema_list must be present
        """
        missing = [gtfs_file for gtfs_file in gtfs_schema_list() if gtfs_file not in tables]
        if missing:
            raise KeyError(f"parsed tables missing for {missing}")

        frames = {table_name(gtfs_file): tables[gtfs_file].frame for gtfs_file in gtfs_schema_list()}
        skipped = {gtfs_file: tables[gtfs_file].skipped_rows for gtfs_file in gtfs_schema_list()}

        return cls(**frames, skipped_rows=skipped)

    def table(self, gtfs_table_file: str) -> pl.DataFrame:
        """
        lookup a table by file name or table name

        :param gtfs_table_file: (ie. stop_times.txt or stop_times)
        """
        name = table_name(gtfs_table_file)
        if name not in self.record_counts():
            raise IndexError(f"{gtfs_table_file} is not a table of the feed")
        frame: pl.DataFrame = getattr(self, name)
        return frame

    def record_counts(self) -> Dict[str, int]:
        """number of records in each table, keyed by table name"""
        return {table_name(gtfs_file): getattr(self, table_name(gtfs_file)).height for gtfs_file in gtfs_schema_list()}

    @property
    def total_skipped(self) -> int:
        """number of malformed rows dropped across every table"""
        return sum(self.skipped_rows.values())


# pylint: enable=too-many-instance-attributes
