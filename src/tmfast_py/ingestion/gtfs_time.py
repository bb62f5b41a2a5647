"""
decoders and encoders for the two temporal text formats used by the schedule
feed

clock times ("HH:MM:SS") are offsets from the start of a service day. trips
that run past midnight keep the date of the service day they started on, so
hours can be 24 or greater. they are represented as timedelta / polars
Duration values, never as a time of day.

calendar dates are six digit "YYMMDD" tokens. two digit years are assigned a
century with the POSIX strptime pivot:
    00-68 -> 2000-2068
    69-99 -> 1969-1999
"""

import re
from datetime import date, timedelta

import polars as pl

from tmfast_py.ingestion.error import FieldFormatError

# hours may be any number of digits, minutes and seconds must be zero padded
CLOCK_TIME_REGEX = r"^([0-9]+):([0-5][0-9]):([0-5][0-9])$"
CALENDAR_DATE_REGEX = r"^([0-9]{2})([0-9]{2})([0-9]{2})$"

CENTURY_PIVOT = 69


def century_for_year(two_digit_year: int) -> int:
    """return the four digit year for a two digit year"""
    if two_digit_year < CENTURY_PIVOT:
        return 2000 + two_digit_year
    return 1900 + two_digit_year


def decode_clock_time(text: str) -> timedelta:
    """
    decode a service day clock time into an offset from the service day start

    "25:10:00" -> timedelta(hours=25, minutes=10)

    :param text: clock time in H+:MM:SS format

    :return offset from start of service day
    """
    match = re.match(CLOCK_TIME_REGEX, text.strip())
    if match is None:
        raise FieldFormatError(f"'{text}' is not a clock time", value=text)

    hours, minutes, seconds = (int(group) for group in match.groups())
    return timedelta(hours=hours, minutes=minutes, seconds=seconds)


def encode_clock_time(offset: timedelta) -> str:
    """encode an offset from the service day start as HH:MM:SS"""
    if offset < timedelta(0) or offset.microseconds != 0:
        raise FieldFormatError(f"{offset!r} can not be written as a clock time")

    total_seconds = int(offset.total_seconds())
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def decode_calendar_date(text: str) -> date:
    """
    decode a YYMMDD token into a calendar date

    "230615" -> date(2023, 6, 15)

    :param text: six digit date token

    :return calendar date
    """
    match = re.match(CALENDAR_DATE_REGEX, text.strip())
    if match is None:
        raise FieldFormatError(f"'{text}' is not a YYMMDD date", value=text)

    year, month, day = (int(group) for group in match.groups())
    try:
        return date(century_for_year(year), month, day)
    except ValueError as exception:
        raise FieldFormatError(f"'{text}' is not a valid date", value=text) from exception


def encode_calendar_date(value: date) -> str:
    """encode a calendar date as a YYMMDD token"""
    if not 1900 + CENTURY_PIVOT <= value.year < 2000 + CENTURY_PIVOT:
        raise FieldFormatError(f"{value} is outside of the two digit year window")
    return value.strftime("%y%m%d")


def clock_time_expr(column: str) -> pl.Expr:
    """
    polars expression decoding a String column of clock times into a Duration
    column. values that do not decode are NULL.
    """
    text = pl.col(column).str.strip_chars()
    return pl.duration(
        hours=text.str.extract(CLOCK_TIME_REGEX, 1).cast(pl.Int64),
        minutes=text.str.extract(CLOCK_TIME_REGEX, 2).cast(pl.Int64),
        seconds=text.str.extract(CLOCK_TIME_REGEX, 3).cast(pl.Int64),
        time_unit="us",
    ).alias(column)


def calendar_date_expr(column: str) -> pl.Expr:
    """
    polars expression decoding a String column of YYMMDD tokens into a Date
    column. values that do not decode are NULL.
    """
    text = pl.col(column).str.strip_chars()
    year = text.str.extract(CALENDAR_DATE_REGEX, 1).cast(pl.Int32)
    century = pl.when(year < CENTURY_PIVOT).then(pl.lit("20")).otherwise(pl.lit("19"))

    return (
        pl.when(year.is_not_null())
        .then(pl.concat_str([century, text]).str.to_date("%Y%m%d", strict=False))
        .otherwise(pl.lit(None, dtype=pl.Date))
        .alias(column)
    )


def encode_clock_time_expr(column: str) -> pl.Expr:
    """polars expression encoding a Duration column as HH:MM:SS text"""
    total_seconds = pl.col(column).dt.total_seconds()
    return pl.format(
        "{}:{}:{}",
        (total_seconds // 3600).cast(pl.String).str.zfill(2),
        (total_seconds % 3600 // 60).cast(pl.String).str.zfill(2),
        (total_seconds % 60).cast(pl.String).str.zfill(2),
    ).alias(column)


def encode_calendar_date_expr(column: str) -> pl.Expr:
    """polars expression encoding a Date column as YYMMDD text"""
    return pl.col(column).dt.strftime("%y%m%d").alias(column)
