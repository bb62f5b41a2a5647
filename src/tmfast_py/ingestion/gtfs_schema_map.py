from typing import Dict, List, Type

import dataframely as dy

# pylint: disable=too-few-public-methods


class Trips(dy.Schema):
    """trips.txt"""

    route_id = dy.UInt32(nullable=False)
    service_id = dy.String(nullable=False)
    trip_id = dy.UInt32(nullable=False)
    direction_id = dy.UInt8(nullable=False, max=1)
    shape_id = dy.UInt32(nullable=False)


class Routes(dy.Schema):
    """routes.txt"""

    route_id = dy.UInt32(nullable=False)
    route_short_name = dy.UInt32(nullable=True)
    route_long_name = dy.String(nullable=False)


class RouteDirections(dy.Schema):
    """route_directions.txt, keyed by (route_id, direction_id)"""

    route_id = dy.UInt32(nullable=False)
    direction_id = dy.UInt8(nullable=False, max=1)
    direction_name = dy.String(nullable=False)


class StopTimes(dy.Schema):
    """
    stop_times.txt

    arrival_time and departure_time are offsets from the start of the
    service day and can exceed 24 hours
    """

    trip_id = dy.UInt32(nullable=False)
    arrival_time = dy.Duration(nullable=False)
    departure_time = dy.Duration(nullable=False)
    stop_id = dy.UInt32(nullable=False)
    stop_sequence = dy.UInt32(nullable=False)
    shape_dist_traveled = dy.Float64(nullable=True)


class Stops(dy.Schema):
    """stops.txt, coordinates are WGS84 degrees"""

    stop_id = dy.UInt32(nullable=False)
    stop_code = dy.UInt32(nullable=True)
    stop_name = dy.String(nullable=False)
    stop_desc = dy.String(nullable=True)
    stop_lat = dy.Float64(nullable=False, min=-90.0, max=90.0)
    stop_lon = dy.Float64(nullable=False, min=-180.0, max=180.0)
    direction = dy.String(nullable=True)
    position = dy.String(nullable=True)


class Transfers(dy.Schema):
    """transfers.txt, directed from_stop_id -> to_stop_id"""

    from_stop_id = dy.UInt32(nullable=False)
    to_stop_id = dy.UInt32(nullable=False)


class Shapes(dy.Schema):
    """shapes.txt, one row per point of a shape polyline"""

    shape_id = dy.UInt32(nullable=False)
    shape_pt_lat = dy.Float64(nullable=False, min=-90.0, max=90.0)
    shape_pt_lon = dy.Float64(nullable=False, min=-180.0, max=180.0)
    shape_pt_sequence = dy.UInt32(nullable=False)
    shape_dist_traveled = dy.Float64(nullable=True)


class CalendarDates(dy.Schema):
    """calendar_dates.txt, dates are YYMMDD tokens in the source file"""

    service_id = dy.String(nullable=False)
    date = dy.Date(nullable=False)


# pylint: enable=too-few-public-methods

# table file name -> schema, in the order tables are parsed
GTFS_TABLES: Dict[str, Type[dy.Schema]] = {
    "trips.txt": Trips,
    "routes.txt": Routes,
    "route_directions.txt": RouteDirections,
    "stop_times.txt": StopTimes,
    "stops.txt": Stops,
    "transfers.txt": Transfers,
    "shapes.txt": Shapes,
    "calendar_dates.txt": CalendarDates,
}


def gtfs_schema_list() -> List[str]:
    """
    :return list of gtfs table files that make up a feed
    """
    return list(GTFS_TABLES.keys())


def gtfs_schema(gtfs_table_file: str) -> Type[dy.Schema]:
    """
    Get dataframely schema for gtfs_table_file

    :param gtfs_table_file: (ie. stop_times.txt)

    :return schema of gtfs_table_file
    """
    schema = GTFS_TABLES.get(gtfs_table_file, None)
    if schema is not None:
        return schema

    raise IndexError(f"{gtfs_table_file} is not found in schema map")


def table_name(gtfs_table_file: str) -> str:
    """stop_times.txt -> stop_times"""
    return gtfs_table_file.replace(".txt", "")
