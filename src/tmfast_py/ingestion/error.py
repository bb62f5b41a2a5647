from typing import Optional


class GTFSIngestException(Exception):
    """
    Generic exception for the tmfast_py ingestion library
    """


class FeedStageException(GTFSIngestException):
    """
    Failure that is fatal to a whole ingestion call. `stage` identifies which
    part of the pipeline failed: "fetch", "extract" or "parse".
    """

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage}: {message}")
        self.stage = stage


class FeedNetworkError(FeedStageException):
    """
    Transport or remote failure while fetching the schedule archive
    """


class FeedIOError(FeedStageException):
    """
    Local filesystem or archive failure, including missing table files
    """


class FieldFormatError(GTFSIngestException):
    """
    Text of a field does not match its expected encoding
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        column: Optional[str] = None,
        row: Optional[int] = None,
        value: Optional[str] = None,
    ):
        location = []
        if table is not None:
            location.append(f"table={table}")
        if row is not None:
            location.append(f"row={row}")
        if column is not None:
            location.append(f"column={column}")
        if location:
            message = f"{message} ({', '.join(location)})"
        super().__init__(message)
        self.table = table
        self.column = column
        self.row = row
        self.value = value

    # pylint: enable=too-many-arguments
