import numpy as np
import pandas as pd
import pytest

from nested_fitting import augment_all, fit_models, nest, successful, tidy_coefficients
from nested_fitting.models import default_models, exponential, exponential_func


def _flat_and_coefs():
    rng = np.random.default_rng(0)
    frames = []
    for g, tau in (("a", 400.0), ("b", 700.0)):
        t = np.linspace(0.0, 3000.0, 31)
        y = exponential_func(t, dT_inf=10.0, tau=tau) + rng.normal(0.0, 0.1, size=t.size)
        frames.append(pd.DataFrame({"sensor": g, "elapsed_time": t, "delta_value": y}))
    nested = nest(pd.concat(frames, ignore_index=True), "sensor")
    fits = successful(fit_models(default_models(), nested))
    return augment_all(fits, nested), tidy_coefficients(fits)


def test_plot_fits_one_panel_per_group() -> None:
    matplotlib = pytest.importorskip("matplotlib")
    matplotlib.use("Agg", force=True)
    import matplotlib.pyplot as plt

    from nested_fitting.viz import plot_fits

    flat, _ = _flat_and_coefs()
    fig, axs = plot_fits(flat, ncols=3)

    visible = [ax for ax in np.asarray(axs).ravel() if ax.get_visible()]
    assert len(visible) == 2
    assert visible[0].get_title() == "sensor a"
    assert visible[0].get_xlabel() == "elapsed time [s]"
    labels = visible[0].get_legend_handles_labels()[1]
    assert "measured" in labels
    assert "exponential" in labels

    plt.close(fig)


def test_plot_fits_rejects_too_few_axes() -> None:
    matplotlib = pytest.importorskip("matplotlib")
    matplotlib.use("Agg", force=True)
    import matplotlib.pyplot as plt

    from nested_fitting.viz import plot_fits

    flat, _ = _flat_and_coefs()
    fig, ax = plt.subplots()
    with pytest.raises(ValueError):
        plot_fits(flat, axs=[ax])
    plt.close(fig)


def test_plot_residuals_and_coefficients() -> None:
    matplotlib = pytest.importorskip("matplotlib")
    matplotlib.use("Agg", force=True)
    import matplotlib.pyplot as plt

    from nested_fitting.viz import plot_coefficients, plot_residuals

    flat, coefs = _flat_and_coefs()

    fig, ax = plot_residuals(flat)
    assert ax.get_ylabel() == "residual"
    plt.close(fig)

    fig, ax = plot_coefficients(coefs, "tau")
    assert ax.get_ylabel() == "tau"
    assert [t.get_text() for t in ax.get_xticklabels()] == ["a", "b"]
    plt.close(fig)

    with pytest.raises(ValueError):
        plot_coefficients(coefs, "viscosity")


def test_plot_fit_band_and_params() -> None:
    matplotlib = pytest.importorskip("matplotlib")
    matplotlib.use("Agg", force=True)
    import matplotlib.pyplot as plt

    from nested_fitting.viz import plot_fit

    t = np.linspace(0.0, 3000.0, 31)
    y = exponential_func(t, dT_inf=10.0, tau=500.0) + np.random.default_rng(1).normal(0.0, 0.1, size=t.size)
    fit = exponential().fit(t, y)

    fig, ax = plt.subplots()
    plot_fit(ax=ax, fit=fit, band=True, show_params=True, band_options={"rng": np.random.default_rng(0)})

    assert len(ax.lines) == 2
    assert len(ax.collections) == 1
    text = ax.texts[0].get_text()
    assert "dT_inf=" in text
    assert "tau=" in text

    plt.close(fig)
