"""nested_fitting public API."""
from .inputs import DataLoadError, LoadParams, NestedFittingError, load_wide_csv
from .model import Model
from .nesting import Nested, nest, unnest
from .pipeline import (
    augment,
    augment_all,
    coefficient_table,
    failures,
    fit_groups,
    fit_models,
    glance,
    successful,
    tidy_coefficients,
)
from .result import Band, Fit, FitFailure, FitOutcome, is_success
from .tidy import add_elapsed, drop_gaps, gather_sensors, tidy_sensors
from . import models

__all__ = [
    "Band",
    "DataLoadError",
    "Fit",
    "FitFailure",
    "FitOutcome",
    "LoadParams",
    "Model",
    "Nested",
    "NestedFittingError",
    "add_elapsed",
    "augment",
    "augment_all",
    "coefficient_table",
    "drop_gaps",
    "failures",
    "fit_groups",
    "fit_models",
    "gather_sensors",
    "glance",
    "is_success",
    "load_wide_csv",
    "models",
    "nest",
    "successful",
    "tidy_coefficients",
    "tidy_sensors",
    "unnest",
]
