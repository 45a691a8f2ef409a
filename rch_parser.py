#!/usr/bin/env python3
"""
RCH time-series parser

An RCH file is a line-oriented hydrological series:

    NAME              : Foz do Sorraia
    SERIE_INITIAL_DATA: 1999. 10. 1. 0. 0. 0.
    TIME_UNITS        : DAYS
    Days  YY  MM  DD  hh  mm  ss  Flow
    <BeginTimeSerie>
    0.    1999 10  1   0   0   0   12.5
    ...
    <EndTimeSerie>

Dates come from Y/M/D[/h/m/s] columns, a year plus day-of-year, an explicit
date token, or, when the first column is an elapsed-time axis only, from
SERIE_INITIAL_DATA plus the offset in TIME_UNITS.

Every line after <BeginTimeSerie> is evaluated on its own into a LineOutcome
(a record, or the reason it was skipped). Only a missing structure aborts the
whole file; bad rows are dropped and reported in `skipped`.
"""
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterator, List, Optional, Tuple

from exceptions import ParseError
from models import RchMetadata, RchParsedData, RchRecord, SkippedLine

logger = logging.getLogger(__name__)

BEGIN_MARKER = "<BeginTimeSerie>"
END_MARKER = "<EndTimeSerie>"

# Explicit date tokens accepted when the file has no date/time columns
DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d")

DAY_OF_YEAR_KEYS = ("doy", "jday", "julian_day", "day_of_year")

# Elapsed-time axis columns; never used as the primary value
ELAPSED_KEYS = {"seconds", "minutes", "hours", "days", "time"}

# Seconds per TIME_UNITS value (singular or plural, any case)
UNIT_SECONDS = {"second": 1, "minute": 60, "hour": 3600, "day": 86400}


@dataclass(frozen=True)
class LineOutcome:
    """Result of evaluating a single data line"""
    line_number: int
    line: str
    record: Optional[RchRecord] = None
    skip_reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


def clean_headers(headers: List[str]) -> List[str]:
    """
    Normalize raw column headers into keys.

    The first `MM` column is the month and the second the minute; repeated
    `SS` columns get a numeric suffix.
    """
    keys = []
    mm_seen = 0
    ss_seen = 0
    for header in headers:
        key = header.lower()
        key = re.sub(r"[/().\s-]", "_", key)
        key = re.sub(r"_+", "_", key).strip("_")
        key = re.sub(r"[°�]", "c", key)

        if key == "mm":
            key = "month" if mm_seen == 0 else "minute"
            mm_seen += 1
        elif key == "ss":
            if ss_seen > 0:
                key = f"ss_{ss_seen}"
            ss_seen += 1
        keys.append(key)
    return keys


def _to_float(token: Optional[str]) -> Optional[float]:
    """Parse a numeric token; None for missing or non-numeric"""
    if token is None:
        return None
    try:
        value = float(token.replace(",", "."))
    except ValueError:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _component(token: str, floor: bool = False) -> int:
    """Date component from tokens like `1999`, `10.` or `0.0000`"""
    value = float(token)
    if floor:
        return int(math.floor(value))
    if not value.is_integer():
        raise ValueError(f"non-integral date component {token!r}")
    return int(value)


def _unit_seconds(name: Optional[str]) -> Optional[int]:
    """Seconds per unit for names like `DAYS`, `Hours` or `second`"""
    if not name:
        return None
    return UNIT_SECONDS.get(name.strip().lower().rstrip("s"))


def _initial_datetime(text: Optional[str]) -> Optional[datetime]:
    """Series origin from a SERIE_INITIAL_DATA value: `1999. 10. 1. 0. 0. 0.`"""
    if not text:
        return None
    tokens = text.split()
    if len(tokens) < 3:
        return None
    try:
        parts = [_component(t) for t in tokens[:5]] + [_component(t, floor=True) for t in tokens[5:6]]
        parts += [0] * (6 - len(parts))
        return datetime(*parts)
    except (ValueError, OverflowError):
        return None


class _DateResolver:
    """Builds a timestamp from the date columns of one line"""

    def __init__(self, keys: List[str], attributes: Optional[Dict[str, str]] = None):
        self.keys = keys
        attributes = attributes or {}
        index = {key: i for i, key in enumerate(keys)}
        origin = _initial_datetime(attributes.get("serie_initial_data"))
        unit = _unit_seconds(attributes.get("time_units")) or _unit_seconds(keys[0] if keys else None)

        if all(k in index for k in ("yy", "month", "dd")):
            self.mode = "ymd"
            self.columns = {
                k: index[k] for k in ("yy", "month", "dd", "hh", "minute", "ss") if k in index
            }
        elif "yy" in index and any(k in index for k in DAY_OF_YEAR_KEYS):
            self.mode = "doy"
            doy_key = next(k for k in DAY_OF_YEAR_KEYS if k in index)
            self.columns = {"yy": index["yy"], "doy": index[doy_key]}
        elif keys and keys[0] in ELAPSED_KEYS and origin is not None and unit is not None:
            # Offset from SERIE_INITIAL_DATA counted in TIME_UNITS
            self.mode = "elapsed"
            self.columns = {"offset": 0}
            self.origin = origin
            self.unit_seconds = unit
        else:
            self.mode = "token"
            self.columns = {"date": 0}

    @property
    def date_indexes(self) -> set:
        return set(self.columns.values())

    def resolve(self, tokens: List[str]) -> datetime:
        needed = max(self.columns.values())
        if len(tokens) <= needed:
            raise ValueError(f"expected at least {needed + 1} columns, found {len(tokens)}")

        if self.mode == "ymd":
            year = _component(tokens[self.columns["yy"]])
            month = _component(tokens[self.columns["month"]])
            day = _component(tokens[self.columns["dd"]])
            hour = _component(tokens[self.columns["hh"]]) if "hh" in self.columns else 0
            minute = _component(tokens[self.columns["minute"]]) if "minute" in self.columns else 0
            second = _component(tokens[self.columns["ss"]], floor=True) if "ss" in self.columns else 0
            return datetime(year, month, day, hour, minute, second)

        if self.mode == "doy":
            year = _component(tokens[self.columns["yy"]])
            day_of_year = _component(tokens[self.columns["doy"]])
            return datetime.strptime(f"{year:04d}-{day_of_year:03d}", "%Y-%j")

        if self.mode == "elapsed":
            offset = float(tokens[0].replace(",", "."))
            return self.origin + timedelta(seconds=offset * self.unit_seconds)

        token = tokens[0]
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(token, fmt)
            except ValueError:
                continue
        raise ValueError(f"unrecognized date token {token!r}")


def _locate_sections(lines: List[str]) -> Tuple[Dict[str, str], int, int]:
    """Find header attributes, the column header line and the first data line"""
    attributes: Dict[str, str] = {}
    header_index = -1
    data_start = -1

    for i, raw in enumerate(lines):
        line = raw.strip()
        if not line:
            continue
        if line == BEGIN_MARKER:
            data_start = i + 1
            for j in range(i - 1, -1, -1):
                if lines[j].strip():
                    header_index = j
                    break
            break
        if ":" in line:
            key, _, value = line.partition(":")
            key = key.strip().lower().replace(" ", "_")
            if key:
                attributes[key] = value.strip()

    if data_start == -1:
        raise ParseError(f"Could not find '{BEGIN_MARKER}' marker")
    if header_index == -1:
        raise ParseError(f"Could not find header line before '{BEGIN_MARKER}'")

    return attributes, header_index, data_start


def parse_line(keys: List[str], resolver: _DateResolver, line: str, line_number: int) -> LineOutcome:
    """Evaluate one data line; date and value failures are independent"""
    tokens = line.split()

    try:
        timestamp = resolver.resolve(tokens)
    except (ValueError, OverflowError) as e:
        return LineOutcome(line_number=line_number, line=line, skip_reason=f"invalid date: {e}")

    date_indexes = resolver.date_indexes
    values: Dict[str, Optional[float]] = {}
    primary: Optional[str] = None
    for i, key in enumerate(keys):
        if i in date_indexes:
            continue
        values[key] = _to_float(tokens[i] if i < len(tokens) else None)
        if primary is None and key not in ELAPSED_KEYS:
            primary = key

    record = RchRecord(
        date=timestamp.date(),
        timestamp=timestamp,
        value=values.get(primary) if primary else None,
        values=values,
    )
    return LineOutcome(line_number=line_number, line=line, record=record)


def iter_outcomes(content: str) -> Tuple[Dict[str, str], List[str], Iterator[LineOutcome]]:
    """
    Split RCH content into its header attributes, column keys and a lazy
    sequence of per-line outcomes.

    Raises:
        ParseError: if the content has no recognizable structure
    """
    if not content or not content.strip():
        raise ParseError("RCH content is empty")

    lines = content.splitlines()
    attributes, header_index, data_start = _locate_sections(lines)

    keys = clean_headers(lines[header_index].split())
    if not keys:
        raise ParseError(f"Failed to parse any headers from line {header_index + 1}")

    resolver = _DateResolver(keys, attributes)

    def outcomes() -> Iterator[LineOutcome]:
        for i in range(data_start, len(lines)):
            line = lines[i].strip()
            if not line:
                continue
            if line == END_MARKER:
                break
            if line.startswith("<"):
                continue
            yield parse_line(keys, resolver, line, i + 1)

    return attributes, keys, outcomes()


def parse(content: str, source_file_name: Optional[str] = None) -> RchParsedData:
    """
    Parse RCH content into records.

    Records keep file order. Lines with an unparsable date are skipped;
    unparsable values become None.

    Raises:
        ParseError: on empty input, missing markers/header, or no data lines
    """
    attributes, keys, outcomes = iter_outcomes(content)

    timeseries: List[RchRecord] = []
    skipped: List[SkippedLine] = []
    for outcome in outcomes:
        if outcome.ok:
            timeseries.append(outcome.record)
        else:
            logger.debug(f"[RCH] Skipping line {outcome.line_number}: {outcome.skip_reason}")
            skipped.append(SkippedLine(
                line_number=outcome.line_number,
                reason=outcome.skip_reason,
                line=outcome.line,
            ))

    if not timeseries and not skipped:
        raise ParseError("RCH content has a header but no data lines")

    if skipped:
        logger.info(f"[RCH] {source_file_name or 'content'}: skipped {len(skipped)} malformed line(s)")

    metadata = RchMetadata(
        source_file_name=source_file_name,
        record_count=len(timeseries),
        skipped_count=len(skipped),
        column_headers=keys,
        attributes=attributes,
    )
    return RchParsedData(timeseries=timeseries, metadata=metadata, skipped=skipped)


def is_chronological(data: RchParsedData) -> bool:
    """True when record timestamps never decrease"""
    series = data.timeseries
    return all(series[i].timestamp <= series[i + 1].timestamp for i in range(len(series) - 1))


def serialize(data: RchParsedData) -> Dict:
    """JSON-ready dict with camelCase keys"""
    return data.model_dump(mode="json", by_alias=True)
