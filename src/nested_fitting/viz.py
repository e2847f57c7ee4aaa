from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence, Tuple
from warnings import warn

import numpy as np
import pandas as pd

from .util import uncertainty_to_string


def _panel_grid(n: int, ncols: int) -> Tuple[int, int]:
    ncols = max(1, min(int(ncols), n))
    nrows = int(np.ceil(n / ncols))
    return nrows, ncols


def plot_fit(
    *,
    ax: Optional[Any] = None,
    fit: Any,
    xg: Optional[np.ndarray] = None,
    band: bool = False,
    band_options: Optional[Mapping[str, Any]] = None,
    band_kwargs: Optional[Mapping[str, Any]] = None,
    data_kwargs: Optional[Mapping[str, Any]] = None,
    line_kwargs: Optional[Mapping[str, Any]] = None,
    show_params: bool = False,
    param_names: Optional[Sequence[str]] = None,
    param_digits: int | str | None = "auto",
    text_kwargs: Optional[Mapping[str, Any]] = None,
) -> Tuple[Any, Any]:
    """Plot one fit's training data and fitted curve on a Matplotlib Axes.

    Parameters
    ----------
    ax : matplotlib.axes.Axes, optional
        If None, a new figure/axes is created.
    fit : Fit
        A converged fit; its training (x, y) are drawn as points.
    xg : ndarray, optional
        Grid for the fit line. Defaults to 400 points over the x range.
    band : bool
        If True, draw the covariance band from fit.band().
    band_options : dict, optional
        Keyword options forwarded to fit.band().
    band_kwargs, data_kwargs, line_kwargs, text_kwargs : dict, optional
        Styling kwargs for fill_between, plot (data), plot (line) and text.
    show_params : bool
        If True, annotate fitted parameters on the plot.
    param_names : sequence of str, optional
        Names to include in the parameter box. Defaults to free params.
    param_digits : int | "auto"
        Significant digits for parameter uncertainty formatting.
    """
    import matplotlib.pyplot as plt

    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure

    data_kwargs = dict(data_kwargs or {})
    line_kwargs = dict(line_kwargs or {})
    band_options = dict(band_options or {})
    band_kwargs = dict(band_kwargs or {})
    text_kwargs = dict(text_kwargs or {})

    x_arr = np.asarray(fit.x, dtype=float)
    y_arr = np.asarray(fit.y, dtype=float)

    data_kwargs.setdefault("marker", "o")
    data_kwargs.setdefault("linestyle", "none")
    data_kwargs.setdefault("ms", 3)
    ax.plot(x_arr, y_arr, **data_kwargs)

    if xg is None:
        xg = np.linspace(float(np.min(x_arr)), float(np.max(x_arr)), 400)
    line_kwargs.setdefault("label", fit.model.name)
    ax.plot(xg, fit.predict(xg), **line_kwargs)

    if band:
        try:
            band_obj = fit.band(xg, **band_options)
        except ValueError as exc:
            warn(f"plot_fit: could not compute band: {exc}", UserWarning)
        else:
            band_kwargs.setdefault("alpha", 0.2)
            ax.fill_between(xg, band_obj.low, band_obj.high, **band_kwargs)

    if show_params:
        params = fit.params
        if param_names is None:
            names = [n for n, pv in params.items() if not pv.fixed]
        else:
            names = list(param_names)

        lines = []
        for name in names:
            pv = params[name]
            if pv.stderr is None:
                lines.append(f"{name}={pv.value:.4g}")
            else:
                lines.append(
                    f"{name}={uncertainty_to_string(pv.value, pv.stderr, precision=param_digits)}"
                )

        if lines:
            text_kwargs.setdefault("ha", "left")
            text_kwargs.setdefault("va", "top")
            text_kwargs.setdefault("fontsize", 9)
            text_kwargs.setdefault("transform", ax.transAxes)
            text_kwargs.setdefault(
                "bbox",
                {"boxstyle": "round", "facecolor": "white", "alpha": 0.7, "edgecolor": "none"},
            )
            ax.text(0.02, 0.98, "\n".join(lines), **text_kwargs)

    return fig, ax


def plot_fits(
    flat: pd.DataFrame,
    *,
    axs: Optional[Any] = None,
    group: str = "sensor",
    model: str = "model",
    x: str = "elapsed_time",
    y: str = "delta_value",
    predicted: str = "predicted_value",
    ncols: int = 3,
    x_label: str = "elapsed time [s]",
    y_label: str = "temperature rise",
    legend: bool = True,
) -> Tuple[Any, Any]:
    """Measured points plus one predicted line per model, one panel per group.

    `flat` is the output of `augment_all`: the measured series repeats once
    per model, so it is drawn from the first model's rows only.
    """
    import matplotlib.pyplot as plt

    groups = list(dict.fromkeys(flat[group]))
    if not groups:
        raise ValueError("plot_fits: nothing to plot.")

    if axs is None:
        nrows, nc = _panel_grid(len(groups), ncols)
        fig, axs = plt.subplots(
            nrows, nc, figsize=(4 * nc, 3 * nrows), squeeze=False, sharey=True,
            constrained_layout=True,
        )
    else:
        fig = np.asarray(axs, dtype=object).ravel()[0].figure
    ax_list = list(np.asarray(axs, dtype=object).ravel())
    if len(ax_list) < len(groups):
        raise ValueError(f"plot_fits needs {len(groups)} axes, got {len(ax_list)}.")

    models = list(dict.fromkeys(flat[model]))
    for ax, gid in zip(ax_list, groups):
        sub = flat[flat[group] == gid]
        measured = sub[sub[model] == sub[model].iloc[0]]
        ax.plot(measured[x], measured[y], "o", ms=3, color="0.4", label="measured")
        for mid in models:
            part = sub[sub[model] == mid]
            if part.empty:
                continue
            ax.plot(part[x], part[predicted], "-", lw=1.5, label=str(mid))
        ax.set_title(f"{group} {gid}")
        ax.set_xlabel(x_label)
        ax.set_ylabel(y_label)
    for ax in ax_list[len(groups):]:
        ax.set_visible(False)
    if legend:
        ax_list[0].legend(fontsize=8)
    return fig, axs


def plot_residuals(
    flat: pd.DataFrame,
    *,
    ax: Optional[Any] = None,
    model: str = "model",
    x: str = "elapsed_time",
    residual: str = "residual",
) -> Tuple[Any, Any]:
    """Residuals against elapsed time, coloured by model, all groups pooled."""
    import matplotlib.pyplot as plt

    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure

    for mid in dict.fromkeys(flat[model]):
        part = flat[flat[model] == mid]
        ax.plot(part[x], part[residual], ".", ms=3, alpha=0.6, label=str(mid))
    ax.axhline(0.0, color="k", lw=0.8)
    ax.set_xlabel("elapsed time [s]")
    ax.set_ylabel("residual")
    ax.legend(fontsize=8)
    return fig, ax


def plot_coefficients(
    coefs: pd.DataFrame,
    term: str,
    *,
    ax: Optional[Any] = None,
    group: str = "sensor",
    model: str = "model",
) -> Tuple[Any, Any]:
    """Estimate ± standard error of one term per group, one series per model."""
    import matplotlib.pyplot as plt

    sub = coefs[coefs["term"] == term]
    if sub.empty:
        raise ValueError(f"No coefficients for term {term!r}.")

    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure

    groups = list(dict.fromkeys(sub[group]))
    pos = {g: i for i, g in enumerate(groups)}
    models = list(dict.fromkeys(sub[model]))
    width = 0.8 / max(1, len(models))
    for j, mid in enumerate(models):
        part = sub[sub[model] == mid]
        xs = np.array([pos[g] for g in part[group]], dtype=float)
        xs = xs - 0.4 + width * (j + 0.5)
        ax.errorbar(
            xs, part["estimate"], yerr=part["std_error"].fillna(0.0),
            fmt="o", ms=4, capsize=2, label=str(mid),
        )
    ax.set_xticks(range(len(groups)))
    ax.set_xticklabels([str(g) for g in groups])
    ax.set_xlabel(group)
    ax.set_ylabel(term)
    ax.legend(fontsize=8)
    return fig, ax
