"""Wide -> long reshaping and per-sensor elapsed/delta columns."""
from __future__ import annotations

from typing import Optional, Sequence

import pandas as pd

from .inputs import sensor_columns


def gather_sensors(
    wide: pd.DataFrame,
    *,
    time_column: str = "time",
    prefix: str = "temperature_",
    key: str = "sensor",
    value: str = "value",
    columns: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Stack the sensor columns into (time, key, value) rows.

    The sensor id is the column name with `prefix` stripped. Values and gaps
    are carried over untouched, so the result has ``len(wide) * n_sensors``
    rows: every time paired with every sensor.
    """
    if time_column not in wide.columns:
        raise KeyError(time_column)
    cols = list(columns) if columns is not None else sensor_columns(wide, prefix)
    if not cols:
        raise ValueError(f"No sensor columns with prefix {prefix!r}.")

    long = wide.melt(
        id_vars=[time_column],
        value_vars=cols,
        var_name=key,
        value_name=value,
    )
    long[key] = long[key].str.removeprefix(prefix)
    return long[[time_column, key, value]]


def drop_gaps(long: pd.DataFrame, *, value: str = "value") -> pd.DataFrame:
    """Drop rows with a missing reading."""
    return long.dropna(subset=[value]).reset_index(drop=True)


def add_elapsed(
    long: pd.DataFrame,
    *,
    key: str = "sensor",
    time_column: str = "time",
    value: str = "value",
    elapsed: str = "elapsed_time",
    delta: str = "delta_value",
) -> pd.DataFrame:
    """Sort by (key, time) and add elapsed time and value change per group.

    ``elapsed = time - first time`` and ``delta = value - first value`` within
    each group, so every group starts at (0, 0). Timestamps give elapsed
    seconds as floats. Readings must be gap-free; run `drop_gaps` first.
    """
    if long[value].isna().any():
        raise ValueError(
            f"Column {value!r} has missing readings; call drop_gaps() before add_elapsed()."
        )
    out = long.sort_values([key, time_column], kind="mergesort").reset_index(drop=True)
    groups = out.groupby(key, sort=False)

    since = out[time_column] - groups[time_column].transform("first")
    if since.dtype.kind == "m":
        since = since.dt.total_seconds()
    out[elapsed] = since.astype(float)
    out[delta] = (out[value] - groups[value].transform("first")).astype(float)
    return out


def tidy_sensors(
    wide: pd.DataFrame,
    *,
    time_column: str = "time",
    prefix: str = "temperature_",
    key: str = "sensor",
    value: str = "value",
) -> pd.DataFrame:
    """gather -> drop gaps -> elapsed/delta: the long table the fits run on."""
    long = gather_sensors(
        wide, time_column=time_column, prefix=prefix, key=key, value=value
    )
    long = drop_gaps(long, value=value)
    return add_elapsed(long, key=key, time_column=time_column, value=value)
