import os
import zipfile
from typing import Dict, Iterable, Optional, Tuple

# header line of each gtfs table file
TABLE_HEADERS: Dict[str, str] = {
    "trips.txt": "route_id,service_id,trip_id,direction_id,shape_id",
    "routes.txt": "route_id,route_short_name,route_long_name",
    "route_directions.txt": "route_id,direction_id,direction_name",
    "stop_times.txt": "trip_id,arrival_time,departure_time,stop_id,stop_sequence,shape_dist_traveled",
    "stops.txt": "stop_id,stop_code,stop_name,stop_desc,stop_lat,stop_lon,direction,position",
    "transfers.txt": "from_stop_id,to_stop_id",
    "shapes.txt": "shape_id,shape_pt_lat,shape_pt_lon,shape_pt_sequence,shape_dist_traveled",
    "calendar_dates.txt": "service_id,date",
}

# a small, well formed slice of a light rail schedule
SAMPLE_ROWS: Dict[str, Tuple[str, ...]] = {
    "trips.txt": (
        "90,A.626,9766660,0,480447",
        "90,A.626,9766661,1,480448",
    ),
    "routes.txt": (
        "90,,MAX Red Line",
        "4,4,Division/Fessenden",
    ),
    "route_directions.txt": (
        "90,0,To City Center/Beaverton",
        "90,1,To Airport",
    ),
    "stop_times.txt": (
        "9766660,23:50:00,23:50:30,8370,1,0.0",
        "9766660,24:05:00,24:05:00,8371,2,1520.4",
        "9766660,25:10:00,25:10:00,8372,3,5021.9",
    ),
    "stops.txt": (
        "8370,8370,Pioneer Square South MAX Station,,45.518606,-122.679064,Westbound,Nearside",
        "8371,8371,Providence Park MAX Station,Near SW 18th Ave,45.521577,-122.689958,Westbound,",
        "8372,,Goose Hollow/SW Jefferson St MAX Station,,45.517909,-122.694255,,",
    ),
    "transfers.txt": (
        "8370,8371",
        "8371,8372",
    ),
    "shapes.txt": (
        "480447,45.518606,-122.679064,1,0.0",
        "480447,45.521577,-122.689958,2,1520.4",
        "480447,45.517909,-122.694255,3,5021.9",
    ),
    "calendar_dates.txt": (
        "A.626,230615",
        "A.626,230616",
    ),
}


def table_text(gtfs_table_file: str, rows: Iterable[str] = ()) -> str:
    """csv text for a table file with the standard header"""
    return "\n".join((TABLE_HEADERS[gtfs_table_file], *rows)) + "\n"


def header_only_tables() -> Dict[str, str]:
    """every table file with a header and no records"""
    return {gtfs_file: table_text(gtfs_file) for gtfs_file in TABLE_HEADERS}


def sample_tables() -> Dict[str, str]:
    """every table file with the sample records"""
    return {gtfs_file: table_text(gtfs_file, SAMPLE_ROWS[gtfs_file]) for gtfs_file in TABLE_HEADERS}


def write_gtfs_zip(zip_path: str, tables: Dict[str, str], prefix: Optional[str] = None) -> str:
    """
    write tables into a zip archive at zip_path

    :param tables: Dict[entry name: file contents]
    :param prefix: optional directory prefix for every entry

    :return zip_path
    """
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for entry_name, contents in tables.items():
            if prefix is not None:
                entry_name = f"{prefix}/{entry_name}"
            archive.writestr(entry_name, contents)

    return zip_path


def write_table_dir(table_dir: str, tables: Dict[str, str]) -> str:
    """write tables as plain files into table_dir"""
    os.makedirs(table_dir, exist_ok=True)
    for gtfs_file, contents in tables.items():
        with open(os.path.join(table_dir, gtfs_file), "w", encoding="utf8") as table_file:
            table_file.write(contents)

    return table_dir
