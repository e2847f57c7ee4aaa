import re

import numpy as np
import pytest

from nested_fitting.models import exponential, exponential_func
from nested_fitting.util import uncertainty_to_string


@pytest.mark.parametrize(
    "x, err, precision, expected",
    [
        (0.0, 1e-4, 1, "0(1)e-4"),
        (12.34567, 0.00123, 1, "12.346(1)"),
        (12.34567, 0.00123, 2, "12.3457(12)"),
        (-0.123456, 0.000123, 2, "-0.12346(12)"),
        (0.00123456, 0.000000012345, 2, "0.001234560(12)"),
        (-0.0000123456, 0.0000001234, 1, "-1.23(1)e-5"),
        (1.0, 0.0, 2, "1(0)"),
        (float("nan"), 1.0, 1, "NaN"),
        (1.0, float("inf"), 1, "inf"),
        (1.0, -0.1, 1, "1.0(1)"),
        (1.2345, 0.067, 0, "1.23(7)"),
        (12.34567, 0.00123, "auto", "12.3457(12)"),
        (1.2345, 0.067, "auto", "1.23(7)"),
    ],
)
def test_uncertainty_to_string(x, err, precision, expected) -> None:
    assert uncertainty_to_string(x, err, precision) == expected


@pytest.mark.parametrize(
    "x, err, precision, expected",
    [
        # time constant in seconds
        (598.7, 3.2, "auto", "599(3)"),
        # plateau temperature rise
        (10.02, 0.034, "auto", "10.02(3)"),
        # poorly constrained time constant, leading 1 keeps two digits
        (1234.5, 150.0, "auto", "1230(150)"),
        # convection coefficient
        (0.0123, 0.0004, 1, "0.0123(4)"),
    ],
)
def test_uncertainty_to_string_thermal_parameters(x, err, precision, expected) -> None:
    assert uncertainty_to_string(x, err, precision) == expected


def test_fit_summary_formats_thermal_parameters() -> None:
    t = np.linspace(0.0, 3000.0, 61)
    rng = np.random.default_rng(3)
    y = exponential_func(t, dT_inf=10.0, tau=500.0) + rng.normal(0.0, 0.05, size=t.size)

    fit = exponential().fit(t, y)
    lines = fit.summary().splitlines()

    assert lines[0] == "Fit(model='exponential', backend='scipy.curve_fit', nobs=61)"
    by_name = {ln.split(":")[0].strip(): ln.split(":", 1)[1].strip() for ln in lines[1:]}
    assert list(by_name) == ["dT_inf", "tau", "sigma"]
    for name in ("dT_inf", "tau"):
        pv = fit.params[name]
        assert by_name[name] == uncertainty_to_string(pv.value, pv.stderr, "auto")
        assert re.fullmatch(r"-?[\d.]+\(\d+\)(e-?\d+)?", by_name[name])


def test_fit_summary_marks_fixed_parameters() -> None:
    t = np.linspace(0.0, 3000.0, 61)
    rng = np.random.default_rng(4)
    y = exponential_func(t, dT_inf=10.0, tau=500.0) + rng.normal(0.0, 0.05, size=t.size)

    fit = exponential().fix(dT_inf=10.0).fit(t, y)
    lines = fit.summary().splitlines()

    assert "dT_inf: 10 (fixed)" in [ln.strip() for ln in lines]
    assert not any("(fixed)" in ln for ln in lines if "tau" in ln)
