"""Map model fits over nested groups and flatten the results.

The combined table is an ordinary DataFrame with a list-column ``fit`` that
holds either a Fit or a FitFailure per (model, group) row. Failures stay in
the table until `successful` removes them; everything downstream of that
filter (`augment_all`, `tidy_coefficients`, `glance`) expects Fit objects
only.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Hashable, List, Mapping, Optional

import numpy as np
import pandas as pd

from .model import Model
from .nesting import Nested
from .result import Fit, FitFailure, FitOutcome, is_success

logger = logging.getLogger(__name__)

FIT_COLUMN = "fit"


def fit_group(
    model: Model,
    table: pd.DataFrame,
    *,
    x: str = "elapsed_time",
    y: str = "delta_value",
    backend_options: Optional[Dict[str, Any]] = None,
) -> FitOutcome:
    """Fit `model` to one sub-table's (x, y) columns."""
    return model.fit(
        table[x].to_numpy(dtype=float),
        table[y].to_numpy(dtype=float),
        backend_options=backend_options,
    )


def fit_groups(
    model: Model,
    nested: Nested,
    *,
    x: str = "elapsed_time",
    y: str = "delta_value",
    backend_options: Optional[Dict[str, Any]] = None,
) -> pd.DataFrame:
    """One row per group: (group key, fit outcome). Never raises on a failed fit."""
    outcomes = nested.map(
        lambda t: fit_group(model, t, x=x, y=y, backend_options=backend_options)
    )
    for gid, outcome in outcomes.items():
        if not is_success(outcome):
            logger.debug(
                "fit failed: model=%s %s=%r reason=%s",
                model.name,
                nested.key,
                gid,
                outcome.reason,
            )
    return pd.DataFrame(
        {nested.key: list(outcomes.keys()), FIT_COLUMN: list(outcomes.values())}
    )


def fit_models(
    models: Mapping[str, Model],
    nested: Nested,
    *,
    x: str = "elapsed_time",
    y: str = "delta_value",
    model_column: str = "model",
    backend_options: Optional[Dict[str, Any]] = None,
) -> pd.DataFrame:
    """Fit every model to every group.

    Returns (model, group, fit) rows, models in mapping order then groups in
    nested order. Failed fits are kept as FitFailure rows.
    """
    frames = []
    for model_id, model in models.items():
        df = fit_groups(model, nested, x=x, y=y, backend_options=backend_options)
        df.insert(0, model_column, model_id)
        n_failed = int((~df[FIT_COLUMN].map(is_success).astype(bool)).sum())
        if n_failed:
            logger.info("model %s: %d of %d fits failed", model_id, n_failed, len(df))
        frames.append(df)
    if not frames:
        return pd.DataFrame(columns=[model_column, nested.key, FIT_COLUMN])
    return pd.concat(frames, ignore_index=True)


def successful(combined: pd.DataFrame) -> pd.DataFrame:
    """Keep only rows whose fit converged."""
    mask = combined[FIT_COLUMN].map(is_success).astype(bool)
    return combined[mask].reset_index(drop=True)


def failures(combined: pd.DataFrame) -> pd.DataFrame:
    """The failed rows with their reasons in place of the fit column."""
    mask = ~combined[FIT_COLUMN].map(is_success).astype(bool)
    out = combined[mask].reset_index(drop=True)
    reasons = [
        f.reason if isinstance(f, FitFailure) else repr(f) for f in out[FIT_COLUMN]
    ]
    out = out.drop(columns=[FIT_COLUMN])
    out["reason"] = reasons
    return out


def _key_columns(combined: pd.DataFrame) -> List[str]:
    return [c for c in combined.columns if c != FIT_COLUMN]


def _require_fit(outcome: Any) -> Fit:
    if isinstance(outcome, Fit):
        return outcome
    raise TypeError(
        f"Expected a converged Fit, got {outcome!r}; filter with successful() first."
    )


def augment(
    fit: Fit,
    table: pd.DataFrame,
    *,
    x: str = "elapsed_time",
    y: str = "delta_value",
    predicted: str = "predicted_value",
    residual: str = "residual",
) -> pd.DataFrame:
    """Copy of `table` with predicted values and residuals row-aligned."""
    fit = _require_fit(fit)
    out = table.copy()
    pred = fit.predict(out[x].to_numpy(dtype=float))
    out[predicted] = pred
    out[residual] = out[y].to_numpy(dtype=float) - pred
    return out


def augment_all(
    combined: pd.DataFrame,
    nested: Nested,
    *,
    x: str = "elapsed_time",
    y: str = "delta_value",
) -> pd.DataFrame:
    """Flatten (model, group, fit) rows into one row per observation.

    Every expanded row carries the key columns of its combined row. The
    result has sum(len(group)) rows over the combined rows, so `combined`
    must already be filtered with `successful`.
    """
    keys = _key_columns(combined)
    frames = []
    for rec in combined.to_dict("records"):
        aug = augment(rec[FIT_COLUMN], nested[rec[nested.key]], x=x, y=y)
        for i, k in enumerate(keys):
            aug.insert(i, k, rec[k])
        frames.append(aug)
    if not frames:
        return pd.DataFrame(columns=keys + [x, y, "predicted_value", "residual"])
    return pd.concat(frames, ignore_index=True)


def tidy_coefficients(combined: pd.DataFrame) -> pd.DataFrame:
    """One row per (model, group, term): estimate and standard error."""
    keys = _key_columns(combined)
    rows = []
    for rec in combined.to_dict("records"):
        fit = _require_fit(rec[FIT_COLUMN])
        for name, pv in fit.params.items():
            r: Dict[Hashable, Any] = {k: rec[k] for k in keys}
            r["term"] = name
            r["estimate"] = pv.value
            r["std_error"] = np.nan if pv.stderr is None else pv.stderr
            rows.append(r)
    return pd.DataFrame(rows, columns=keys + ["term", "estimate", "std_error"])


def coefficient_table(
    coefs: pd.DataFrame, *, values: str = "estimate"
) -> pd.DataFrame:
    """Pivot tidy coefficients to (model, group) x term.

    Terms a model does not have are NaN.
    """
    index = [c for c in coefs.columns if c not in ("term", "estimate", "std_error")]
    wide = coefs.pivot(index=index, columns="term", values=values)
    wide.columns.name = None
    # keep first-seen term order rather than alphabetical
    terms = list(dict.fromkeys(coefs["term"]))
    return wide[terms].reset_index()


def glance(combined: pd.DataFrame) -> pd.DataFrame:
    """One row per fit with goodness-of-fit statistics."""
    keys = _key_columns(combined)
    rows = []
    for rec in combined.to_dict("records"):
        fit = _require_fit(rec[FIT_COLUMN])
        r: Dict[Hashable, Any] = {k: rec[k] for k in keys}
        r.update(
            nobs=fit.nobs,
            rss=fit.rss,
            sigma=fit.sigma,
            aic=fit.aic,
            bic=fit.bic,
        )
        rows.append(r)
    return pd.DataFrame(rows, columns=keys + ["nobs", "rss", "sigma", "aic", "bic"])
