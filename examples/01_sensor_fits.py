import logging
import tempfile
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from nested_fitting import (
    LoadParams,
    augment_all,
    coefficient_table,
    failures,
    fit_models,
    glance,
    load_wide_csv,
    nest,
    successful,
    tidy_coefficients,
    tidy_sensors,
)
from nested_fitting.models import (
    default_models,
    erfc_convection_func,
    erfc_func,
    exponential_func,
)
from nested_fitting.viz import plot_coefficients, plot_fits, plot_residuals

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

# ---- a wide sensor file: one time column, one temperature_<id> column per sensor
rng = np.random.default_rng(7)
t = np.arange(0.0, 3600.0 + 1.0, 30.0)
baseline = {"a": 19.8, "b": 20.4, "c": 21.1}
rise = {
    "a": exponential_func(t, dT_inf=12.0, tau=540.0),
    "b": erfc_func(t, dT_inf=15.0, a=18.0),
    "c": erfc_convection_func(t, dT_inf=14.0, a=12.0, b=0.02),
}
wide = pd.DataFrame({"time": pd.Timestamp("2024-03-01 09:00") + pd.to_timedelta(t, unit="s")})
for sid in ("a", "b", "c"):
    wide[f"temperature_{sid}"] = baseline[sid] + rise[sid] + rng.normal(0.0, 0.15, size=t.size)
wide.loc[[17, 18], "temperature_b"] = np.nan  # a gap in the record

tmp = Path(tempfile.mkdtemp())
csv_path = tmp / "sensors.csv"
wide.to_csv(csv_path, index=False)

# ---- load -> gather -> elapsed/delta
wide = load_wide_csv(LoadParams(csv_path, time_column="time", prefix="temperature_"))
long = tidy_sensors(wide, time_column="time", prefix="temperature_", key="sensor")
print(long.head())

# ---- nest: sensor -> sub-table
by_sensor = nest(long, "sensor")
print(by_sensor)
print(by_sensor.to_frame())

# ---- map every model over every sensor; failures stay as values
combined = fit_models(default_models(), by_sensor)
print(combined)
print(failures(combined))

fits = successful(combined)

# ---- unnest predictions and residuals for plotting
flat = augment_all(fits, by_sensor)
print(flat.head())

coefs = tidy_coefficients(fits)
print(coefficient_table(coefs))
print(glance(fits))

print(fits["fit"].iloc[0].summary())

fig, axs = plot_fits(flat, ncols=3)
plot_residuals(flat)
plot_coefficients(coefs, "dT_inf")
plt.show()
