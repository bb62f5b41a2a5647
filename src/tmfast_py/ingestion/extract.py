import os
import re
import shutil
import zipfile
import zlib
from pathlib import Path, PurePosixPath
from typing import List

from tmfast_py.runtime_utils.process_logger import ProcessLogger
from tmfast_py.ingestion.error import FeedIOError

DRIVE_REGEX = r"^[A-Za-z]:$"


def sanitize_entry_path(entry_name: str) -> PurePosixPath:
    """
    convert a zip entry name into a relative path that can not leave the
    directory it is joined to

    windows separators are treated as separators, anything after a NUL
    character is dropped, root anchors, drive letters, "." and ".."
    components are removed.

    "../../etc/passwd" -> "etc/passwd"
    "/abs/stops.txt" -> "abs/stops.txt"
    "C:\\gtfs\\trips.txt" -> "gtfs/trips.txt"

    :return relative path, PurePosixPath(".") if nothing is left
    """
    name = entry_name.split("\0", 1)[0].replace("\\", "/")

    parts = [part for part in name.split("/") if part not in ("", ".", "..")]
    if parts and re.match(DRIVE_REGEX, parts[0]):
        parts = parts[1:]

    return PurePosixPath(*parts)


def entry_destination(destination: Path, entry_name: str) -> Path:
    """
    resolve where a zip entry is written inside of destination

    :raise FeedIOError: if the resolved path is not inside of destination,
        which can only happen when destination contains symlinks
    """
    root = destination.resolve()
    target = (root / sanitize_entry_path(entry_name)).resolve()

    if target != root and root not in target.parents:
        raise FeedIOError("extract", f"entry {entry_name} resolves outside of {root}")

    return target


def extract_archive(archive_path: str, destination: str) -> List[str]:
    """
    unpack every entry of a zip archive into destination

    entry paths are sanitized so that every file lands inside of destination.
    existing files are overwritten. files written before a failure are left
    in place.

    :param archive_path: path to zip archive
    :param destination: directory to extract into, created if missing

    :return list of extracted file paths
    """
    logger = ProcessLogger("extract_gtfs_archive", archive_path=archive_path, destination=destination)
    logger.log_start()

    extracted: List[str] = []
    skipped_entries: List[str] = []
    try:
        root = Path(destination)
        os.makedirs(root, exist_ok=True)

        with zipfile.ZipFile(archive_path) as archive:
            for info in archive.infolist():
                target = entry_destination(root, info.filename)

                if target == root.resolve():
                    skipped_entries.append(info.filename)
                    continue

                if info.is_dir():
                    os.makedirs(target, exist_ok=True)
                    continue

                os.makedirs(target.parent, exist_ok=True)
                with archive.open(info) as entry, open(target, "wb") as out_file:
                    shutil.copyfileobj(entry, out_file)

                extracted.append(str(target))

    except FeedIOError as exception:
        logger.log_failure(exception)
        raise
    except (OSError, zipfile.BadZipFile, zlib.error, RuntimeError, NotImplementedError) as zip_error:
        exception = FeedIOError("extract", f"unable to extract {archive_path}: {zip_error}")
        logger.log_failure(exception)
        raise exception from zip_error

    if skipped_entries:
        logger.add_metadata(skipped_entries=skipped_entries)

    logger.add_metadata(extracted_count=len(extracted))
    logger.log_complete()

    return extracted
