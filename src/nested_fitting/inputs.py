from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union
from warnings import warn

import pandas as pd


class NestedFittingError(Exception):
    """Base exception for nested_fitting errors."""


class DataLoadError(NestedFittingError, ValueError):
    """Raised when the input CSV cannot be turned into a wide sensor table."""


@dataclass(frozen=True)
class LoadParams:
    """Options for reading a wide sensor CSV.

    path:
        CSV file with one time column and one column per sensor.
    time_column:
        Name of the time column.
    prefix:
        Shared prefix of the sensor columns, e.g. ``temperature_`` for
        ``temperature_a``, ``temperature_b``.
    parse_dates:
        Parse the time column as timestamps; otherwise it must be numeric.
        A column that is already numeric is kept as seconds either way.
    date_format:
        Optional explicit timestamp format passed to ``pd.to_datetime``.
    """

    path: Union[str, Path]
    time_column: str = "time"
    prefix: str = "temperature_"
    parse_dates: bool = True
    date_format: Optional[str] = None


def sensor_columns(wide: pd.DataFrame, prefix: str) -> List[str]:
    """Columns of `wide` named with the sensor prefix, in file order."""
    return [c for c in wide.columns if isinstance(c, str) and c.startswith(prefix)]


def load_wide_csv(params: LoadParams) -> pd.DataFrame:
    """Read a wide sensor CSV into a DataFrame.

    Returns the time column (timestamps or floats) followed by the sensor
    columns as floats; empty cells become NaN. Anything that does not parse
    is fatal and raises DataLoadError.
    """
    path = Path(params.path)
    if not path.is_file():
        raise DataLoadError(f"CSV file not found: {path}")

    try:
        df = pd.read_csv(path)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise DataLoadError(f"Error reading CSV file {path}: {e}") from e

    if params.time_column not in df.columns:
        raise DataLoadError(
            f"Time column {params.time_column!r} not found; columns are {list(df.columns)}"
        )
    cols = sensor_columns(df, params.prefix)
    if not cols:
        raise DataLoadError(f"No columns start with sensor prefix {params.prefix!r}")

    times = df[params.time_column]
    # bare numbers are seconds, not epoch nanoseconds
    if params.parse_dates and not pd.api.types.is_numeric_dtype(times):
        try:
            times = pd.to_datetime(times, format=params.date_format)
        except (ValueError, TypeError) as e:
            raise DataLoadError(
                f"Unparseable timestamp in column {params.time_column!r}: {e}"
            ) from e
    else:
        times = pd.to_numeric(times, errors="coerce").astype(float)
        bad = times.isna() & df[params.time_column].notna()
        if bad.any():
            raise DataLoadError(
                f"Non-numeric time at rows {list(df.index[bad])} in {params.time_column!r}"
            )
    if times.isna().any():
        raise DataLoadError(f"Missing time values in column {params.time_column!r}")

    out = pd.DataFrame({params.time_column: times})
    for c in cols:
        values = pd.to_numeric(df[c], errors="coerce")
        bad = values.isna() & df[c].notna()
        if bad.any():
            raise DataLoadError(f"Non-numeric value in column {c!r} at rows {list(df.index[bad])}")
        if values.isna().all():
            warn(f"Sensor column {c!r} has no readings.", UserWarning)
        out[c] = values.astype(float)
    return out
