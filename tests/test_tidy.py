import numpy as np
import pandas as pd
import pytest

from nested_fitting import add_elapsed, drop_gaps, gather_sensors, tidy_sensors


def _wide(n_rows: int = 5) -> pd.DataFrame:
    times = pd.Timestamp("2024-03-01 09:00") + pd.to_timedelta(
        np.arange(n_rows) * 60.0, unit="s"
    )
    return pd.DataFrame(
        {
            "time": times,
            "temperature_a": 20.0 + np.arange(n_rows, dtype=float),
            "temperature_b": 21.0 + 0.5 * np.arange(n_rows, dtype=float),
            "temperature_c": [19.0, np.nan, 19.5, 20.0, 20.5][:n_rows],
            "humidity": 40.0,
        }
    )


def test_gather_row_count_is_rows_times_sensors() -> None:
    wide = _wide()
    long = gather_sensors(wide, time_column="time", prefix="temperature_")

    assert len(long) == len(wide) * 3
    assert list(long.columns) == ["time", "sensor", "value"]


def test_gather_pairs_are_cross_product_of_times_and_ids() -> None:
    wide = _wide()
    long = gather_sensors(wide, time_column="time", prefix="temperature_")

    pairs = set(zip(long["time"], long["sensor"]))
    expected = {(t, s) for t in wide["time"] for s in ("a", "b", "c")}
    assert pairs == expected


def test_gather_leaves_values_untouched() -> None:
    wide = _wide()
    long = gather_sensors(wide, time_column="time", prefix="temperature_")

    for sid in ("a", "b", "c"):
        got = long.loc[long["sensor"] == sid, "value"].to_numpy()
        np.testing.assert_array_equal(got, wide[f"temperature_{sid}"].to_numpy())
    assert long["value"].isna().sum() == 1


def test_gather_custom_names_and_missing_prefix() -> None:
    wide = _wide()
    long = gather_sensors(
        wide, time_column="time", prefix="temperature_", key="probe", value="temp"
    )
    assert list(long.columns) == ["time", "probe", "temp"]

    with pytest.raises(ValueError):
        gather_sensors(wide, time_column="time", prefix="pressure_")
    with pytest.raises(KeyError):
        gather_sensors(wide, time_column="timestamp")


def test_drop_gaps_removes_only_missing_readings() -> None:
    long = gather_sensors(_wide(), time_column="time", prefix="temperature_")
    kept = drop_gaps(long)

    assert len(kept) == len(long) - 1
    assert not kept["value"].isna().any()


def test_first_row_of_every_group_is_zero() -> None:
    long = tidy_sensors(_wide(), time_column="time", prefix="temperature_")

    firsts = long.groupby("sensor").head(1)
    assert (firsts["elapsed_time"] == 0.0).all()
    assert (firsts["delta_value"] == 0.0).all()


def test_elapsed_is_seconds_and_non_decreasing() -> None:
    long = tidy_sensors(_wide(), time_column="time", prefix="temperature_")

    a = long[long["sensor"] == "a"]
    np.testing.assert_allclose(a["elapsed_time"], [0.0, 60.0, 120.0, 180.0, 240.0])
    np.testing.assert_allclose(a["delta_value"], [0.0, 1.0, 2.0, 3.0, 4.0])
    for _, sub in long.groupby("sensor"):
        assert (np.diff(sub["elapsed_time"].to_numpy()) >= 0).all()


def test_gap_rows_are_skipped_before_deltas() -> None:
    long = tidy_sensors(_wide(), time_column="time", prefix="temperature_")

    c = long[long["sensor"] == "c"]
    np.testing.assert_allclose(c["elapsed_time"], [0.0, 120.0, 180.0, 240.0])
    np.testing.assert_allclose(c["delta_value"], [0.0, 0.5, 1.0, 1.5])


def test_single_row_group_is_zero() -> None:
    long = pd.DataFrame(
        {"time": [5.0, 1.0, 3.0, 10.0], "sensor": ["x", "y", "y", "z"], "value": [7.0, 2.0, 4.0, -1.0]}
    )
    out = add_elapsed(long)

    x = out[out["sensor"] == "x"]
    assert len(x) == 1
    assert x["elapsed_time"].iloc[0] == 0.0
    assert x["delta_value"].iloc[0] == 0.0


def test_add_elapsed_sorts_by_group_then_time() -> None:
    long = pd.DataFrame(
        {"time": [3.0, 1.0, 2.0, 0.5], "sensor": ["b", "b", "a", "a"], "value": [9.0, 5.0, 1.0, 0.0]}
    )
    out = add_elapsed(long)

    assert list(out["sensor"]) == ["a", "a", "b", "b"]
    np.testing.assert_allclose(out["elapsed_time"], [0.0, 1.5, 0.0, 2.0])
    np.testing.assert_allclose(out["delta_value"], [0.0, 1.0, 0.0, 4.0])


def test_add_elapsed_rejects_gaps_until_dropped() -> None:
    long = pd.DataFrame(
        {"time": [0.0, 1.0, 2.0], "sensor": ["a", "a", "a"], "value": [np.nan, 1.0, 2.0]}
    )
    with pytest.raises(ValueError, match="drop_gaps"):
        add_elapsed(long)

    out = add_elapsed(drop_gaps(long))
    np.testing.assert_allclose(out["elapsed_time"], [0.0, 1.0])
    np.testing.assert_allclose(out["delta_value"], [0.0, 1.0])
