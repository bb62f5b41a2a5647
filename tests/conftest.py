"""
this file contains fixtures that are intended to be used across multiple test
files
"""

import os
from pathlib import Path
from typing import Callable, Dict, Iterator

import pytest
from _pytest.monkeypatch import MonkeyPatch

from tests.test_resources import write_gtfs_zip


@pytest.fixture(autouse=True, name="service_name_patch")
def fixture_service_name_patch(monkeypatch: MonkeyPatch) -> Iterator[None]:
    """
    ProcessLogger reads the SERVICE_NAME environment variable for the parent
    of every log line. pin it so log output does not depend on the machine
    running the tests.
    """
    monkeypatch.setenv("SERVICE_NAME", "tmfast_test")

    yield


@pytest.fixture(name="feed_url")
def fixture_feed_url(tmp_path: Path) -> Callable[[Dict[str, str]], str]:
    """
    write tables into a zip archive outside of the data directory and return
    a file:// url for it, so the fetch stage can run without network access
    """

    def _create(tables: Dict[str, str]) -> str:
        source_dir = tmp_path.joinpath("remote")
        os.makedirs(source_dir, exist_ok=True)
        zip_path = write_gtfs_zip(str(source_dir.joinpath("gtfs.zip")), tables)
        return Path(zip_path).as_uri()

    return _create


@pytest.fixture(name="data_dir")
def fixture_data_dir(tmp_path: Path) -> str:
    """working directory for a single ingestion call"""
    data_dir = tmp_path.joinpath("tmfast")
    os.makedirs(data_dir, exist_ok=True)
    return str(data_dir)
