import os
from http.client import HTTPException
from typing import Optional
from urllib import parse, request
from urllib.error import HTTPError, URLError

from tmfast_py.runtime_utils.process_logger import ProcessLogger
from tmfast_py.ingestion.error import FeedIOError, FeedNetworkError

TRIMET_GTFS_URL = "https://developer.trimet.org/schedule/gtfs.zip"

# bytes read from the response per write to the archive file
CHUNK_SIZE = 1024 * 1024


def archive_url(url: str, app_id: Optional[str] = None) -> str:
    """
    add the application credential to url as the `appID` query parameter

    :param url: archive url
    :param app_id: application id issued by the agency, if any
    """
    if not app_id:
        return url

    parts = parse.urlsplit(url)
    query = parse.parse_qsl(parts.query, keep_blank_values=True)
    query.append(("appID", app_id))
    return parse.urlunsplit(parts._replace(query=parse.urlencode(query)))


def download_archive(
    url: str,
    archive_path: str,
    timeout: Optional[float] = None,
    app_id: Optional[str] = None,
) -> int:
    """
    stream a schedule archive from url into archive_path
    will overwrite local file, if exists

    there are no retries, the caller decides whether to fetch again

    :param url: http(s) location of the archive
    :param archive_path: local file path to write archive to
    :param timeout: seconds to wait on connect and on each read, waits
        indefinitely if None
    :param app_id: application credential added to the request

    :return number of bytes written
    """
    # app_id is kept out of the logs
    logger = ProcessLogger("download_gtfs_archive", url=url, archive_path=archive_path, timeout=timeout)
    logger.log_start()

    bytes_written = 0
    try:
        archive_dir = os.path.dirname(archive_path)
        if archive_dir:
            os.makedirs(archive_dir, exist_ok=True)

        with request.urlopen(archive_url(url, app_id), timeout=timeout) as response:
            status = getattr(response, "status", None)
            if status is not None and not 200 <= status < 300:
                raise FeedNetworkError("fetch", f"{url} returned status {status}")

            with open(archive_path, "wb") as archive_file:
                while chunk := response.read(CHUNK_SIZE):
                    archive_file.write(chunk)
                    bytes_written += len(chunk)

    except FeedNetworkError as exception:
        logger.log_failure(exception)
        raise
    except HTTPError as http_error:
        exception = FeedNetworkError("fetch", f"{url} returned status {http_error.code}")
        logger.log_failure(exception)
        raise exception from http_error
    except URLError as url_error:
        exception = FeedNetworkError("fetch", f"unable to reach {url}: {url_error.reason}")
        logger.log_failure(exception)
        raise exception from url_error
    except (TimeoutError, ConnectionError, HTTPException) as transport_error:
        exception = FeedNetworkError("fetch", f"transfer from {url} failed: {transport_error}")
        logger.log_failure(exception)
        raise exception from transport_error
    except OSError as os_error:
        exception = FeedIOError("fetch", f"unable to write {archive_path}: {os_error}")
        logger.log_failure(exception)
        raise exception from os_error

    logger.add_metadata(bytes_written=bytes_written)
    logger.log_complete()

    return bytes_written

