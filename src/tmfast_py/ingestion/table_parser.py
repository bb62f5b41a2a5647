"""
read a single header-first gtfs table into a dataframely validated polars
DataFrame

tables are read with every column as text, each column is decoded into its
schema type and then the frame is validated against its schema. a row whose
text does not decode, that is missing a required value, or that has more
fields than the header is a malformed row.
what happens to malformed rows is decided by a RowPolicy.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Dict, List, Optional, Type, Union

import dataframely as dy
import polars as pl

from tmfast_py.runtime_utils.process_logger import ProcessLogger
from tmfast_py.ingestion.error import FeedIOError, FieldFormatError
from tmfast_py.ingestion.gtfs_time import (
    calendar_date_expr,
    clock_time_expr,
    encode_calendar_date_expr,
    encode_clock_time_expr,
)

TableSource = Union[str, "os.PathLike[str]", bytes, BinaryIO]

BAD_PREFIX = "__bad_"

# first field past the width of the header, NULL when a row fits the header
EXTRA_FIELDS = "__extra_fields"

# what bytes that are not valid utf-8 are read as
REPLACEMENT_CHARACTER = "\ufffd"


class RowPolicy(Enum):
    """how the table parser treats malformed rows"""

    # drop the row, count it and keep going
    SKIP = "skip"
    # raise FieldFormatError on the first malformed row
    FAIL_FAST = "fail_fast"


@dataclass(frozen=True)
class ParsedTable:
    """records of one table and the number of source rows that were dropped"""

    table: str
    frame: pl.DataFrame
    skipped_rows: int = 0


def column_decoder(name: str, column: dy.Column) -> pl.Expr:
    """
    expression converting a String column into the type required by column
    """
    if isinstance(column, dy.Duration):
        return clock_time_expr(name)
    if isinstance(column, dy.Date):
        return calendar_date_expr(name)
    if isinstance(column, dy.String):
        return pl.col(name)
    return pl.col(name).str.strip_chars().cast(column.dtype, strict=False).alias(name)


def column_encoder(name: str, column: dy.Column) -> pl.Expr:
    """expression converting a decoded column back into its source text"""
    if isinstance(column, dy.Duration):
        return encode_clock_time_expr(name)
    if isinstance(column, dy.Date):
        return encode_calendar_date_expr(name)
    return pl.col(name).cast(pl.String).alias(name)


def source_bytes(source: TableSource) -> bytes:
    """contents of a table source, read once so it can be parsed more than once"""
    if isinstance(source, bytes):
        return source
    if isinstance(source, (str, os.PathLike)):
        with open(source, "rb") as table_file:
            return table_file.read()
    return source.read()


def read_text_table(source: TableSource, table: str) -> pl.DataFrame:
    """
    read a csv table with all columns as String values

    String values containing only whitespace are converted to NULL. fields
    past the width of the header are collected in the EXTRA_FIELDS column,
    which is NULL for rows that fit the header.

    :param source: file path, bytes or binary file object of the csv table
    :param table: name of table, used for error messages

    :return frame with one String column per header field and EXTRA_FIELDS
    """
    try:
        contents = source_bytes(source)
        header = pl.read_csv(
            contents,
            has_header=True,
            n_rows=1,
            infer_schema_length=0,
            truncate_ragged_lines=True,
            encoding="utf8-lossy",
            raise_if_empty=False,
        ).columns

        if not header:
            return pl.DataFrame()

        # some feeds are written with a utf-8 byte order mark
        header = [col.lstrip("\ufeff") for col in header]

        # one column wider than the header, so rows with too many fields keep
        # their first extra field instead of being truncated to fit
        raw = pl.read_csv(
            contents,
            has_header=False,
            skip_rows=1,
            schema={col: pl.String for col in [*header, EXTRA_FIELDS]},
            truncate_ragged_lines=True,
            encoding="utf8-lossy",
            raise_if_empty=False,
        )
    except (OSError, pl.exceptions.PolarsError) as exception:
        raise FeedIOError("parse", f"unable to read {table}: {exception}") from exception

    return raw.with_columns(
        pl.when(pl.col(pl.String).str.strip_chars().str.len_chars() == 0)
        .then(None)
        .otherwise(pl.col(pl.String))
        .name.keep()
    )


def _first_malformed_row(raw: pl.DataFrame, decoded: pl.DataFrame, table: str) -> FieldFormatError:
    """build a FieldFormatError describing the first malformed row of decoded"""
    bad_columns = [col for col in decoded.columns if col.startswith(BAD_PREFIX)]
    flagged = (
        decoded.select(bad_columns).with_row_index("row").filter(pl.any_horizontal(bad_columns)).row(0, named=True)
    )

    # row numbers are 1 based and do not count the header line
    row = flagged["row"] + 1
    column = next(col.replace(BAD_PREFIX, "", 1) for col in bad_columns if flagged[col])
    value = raw.item(flagged["row"], column)

    if column == EXTRA_FIELDS:
        return FieldFormatError("row has more fields than the header", table=table, row=row, value=value)

    if value is None:
        return FieldFormatError("missing required value", table=table, column=column, row=row)

    if REPLACEMENT_CHARACTER in value:
        return FieldFormatError("text is not valid utf-8", table=table, column=column, row=row, value=value)

    return FieldFormatError(f"unable to decode '{value}'", table=table, column=column, row=row, value=value)


def _first_invalid_row(decoded: pl.DataFrame, failure: dy.FailureInfo, table: str) -> FieldFormatError:
    """
    build a FieldFormatError describing the first row of decoded that failed a
    dataframely rule. every row of decoded is a source row, in source order.
    """
    details = failure.details()
    first = details.row(0, named=True)

    rule = next(col for col in details.columns if col not in decoded.columns and first[col] == "invalid")
    column = rule.split("|", 1)[0] if "|" in rule else None
    value = first.get(column) if column is not None else None

    matches = (
        decoded.with_row_index("__row")
        .join(details.head(1).select(decoded.columns), on=decoded.columns, how="semi", nulls_equal=True)
        .get_column("__row")
    )
    row = int(matches.min()) + 1 if matches.len() > 0 else None  # type: ignore[arg-type]

    return FieldFormatError(
        f"{failure.invalid().height} rows failed validation, first failed rule {rule}",
        table=table,
        column=column,
        row=row,
        value=None if value is None else str(value),
    )


def decode_table(
    raw: pl.DataFrame,
    schema: Type[dy.Schema],
    table: str,
    policy: RowPolicy,
) -> pl.DataFrame:
    """
    convert String columns of raw into the column types of schema, removing
    malformed rows

    a row is malformed if any column has text that does not decode, has text
    that was not valid utf-8, if a required column is NULL or if the row has
    more fields than the header

    :return decoded frame without malformed rows
    """
    columns: Dict[str, dy.Column] = schema.columns()

    decoders: List[pl.Expr] = []
    checks: List[pl.Expr] = []
    for name, column in columns.items():
        decoder = column_decoder(name, column)
        decoders.append(decoder)
        if column.nullable:
            check = pl.col(name).is_not_null() & decoder.is_null()
        else:
            check = decoder.is_null()
        check = check | pl.col(name).str.contains(REPLACEMENT_CHARACTER, literal=True).fill_null(False)
        checks.append(check.alias(f"{BAD_PREFIX}{name}"))

    if EXTRA_FIELDS in raw.columns:
        checks.append(pl.col(EXTRA_FIELDS).is_not_null().alias(f"{BAD_PREFIX}{EXTRA_FIELDS}"))

    decoded = raw.select(*decoders, *checks)
    bad_columns = [col for col in decoded.columns if col.startswith(BAD_PREFIX)]
    malformed = pl.any_horizontal(bad_columns)

    if policy == RowPolicy.FAIL_FAST and decoded.select(malformed.any()).item():
        raise _first_malformed_row(raw, decoded, table)

    return decoded.filter(~malformed).drop(bad_columns)


def parse_table(
    source: TableSource,
    schema: Type[dy.Schema],
    table: Optional[str] = None,
    policy: RowPolicy = RowPolicy.SKIP,
) -> ParsedTable:
    """
    parse one delimited gtfs table into records of schema

    records keep the row order of source. columns in source that are not in
    schema are ignored, optional schema columns missing from source are NULL.

    :param source: file path, bytes or binary file object of the csv table
    :param schema: dataframely schema of the records
    :param table: name of table for logging, defaults to schema name
    :param policy: treatment of malformed rows

    :return ParsedTable of valid records and count of skipped rows
    """
    if table is None:
        table = schema.__name__

    logger = ProcessLogger("parse_gtfs_table", table=table, policy=policy.value)
    logger.log_start()

    try:
        raw = read_text_table(source, table)

        expected_columns = set(schema.column_names())
        columns_in_file = set(raw.columns).difference([EXTRA_FIELDS])

        # log missing columns
        missing_columns = expected_columns.difference(columns_in_file)
        if missing_columns:
            logger.add_metadata(
                missing_columns_count=len(missing_columns),
                missing_columns=",".join(sorted(missing_columns)),
            )

        # log unexpected columns
        unexpected_columns = columns_in_file.difference(expected_columns)
        if unexpected_columns:
            logger.add_metadata(
                unexpected_columns_count=len(unexpected_columns),
                unexpected_columns=",".join(sorted(unexpected_columns)),
            )

        # add missing columns as all NULL values
        if raw.width == 0:
            raw = pl.DataFrame(schema={col: pl.String for col in sorted(expected_columns)})
        else:
            raw = raw.with_columns([pl.lit(None, dtype=pl.String).alias(col) for col in sorted(missing_columns)])

        decoded = decode_table(raw, schema, table, policy)
        malformed_rows = raw.height - decoded.height

        valid, failure = schema.filter(decoded, cast=True)
        invalid_rows = logger.log_dataframely_filter_results(valid, failure)

        if policy == RowPolicy.FAIL_FAST and invalid_rows > 0:
            raise _first_invalid_row(decoded, failure, table)

    except (FeedIOError, FieldFormatError) as exception:
        logger.log_failure(exception)
        raise

    skipped_rows = malformed_rows + invalid_rows
    logger.add_metadata(source_rows=raw.height, records=valid.height, skipped_rows=skipped_rows)
    if skipped_rows > 0:
        logger.log_warning(FieldFormatError(f"skipped {skipped_rows} malformed rows", table=table))

    logger.log_complete()

    return ParsedTable(table=table, frame=valid, skipped_rows=skipped_rows)


def encode_table(frame: pl.DataFrame, schema: Type[dy.Schema]) -> str:
    """
    render records of schema back into csv text, using the same text formats
    that parse_table decodes. NULL values are written as empty fields.
    """
    columns: Dict[str, dy.Column] = schema.columns()
    encoded = frame.select(column_encoder(name, column) for name, column in columns.items())
    return encoded.write_csv()
