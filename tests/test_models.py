import warnings

import numpy as np
import pytest

from nested_fitting import models
from nested_fitting.util import infer_param_names


@pytest.mark.parametrize(
    "func",
    [models.exponential_func, models.erfc_func, models.erfc_convection_func],
)
def test_zero_elapsed_time_gives_zero_rise(func) -> None:
    t = np.array([0.0, 0.0, 60.0])
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        out = func(t)
    assert out[0] == 0.0
    assert np.all(np.isfinite(out))


def test_erfc_forms_approach_full_rise() -> None:
    t = np.array([1e8])
    np.testing.assert_allclose(models.erfc_func(t, dT_inf=5.0, a=10.0), 5.0, rtol=1e-2)
    np.testing.assert_allclose(models.exponential_func(t, dT_inf=5.0, tau=10.0), 5.0)


def test_convection_term_is_stable_and_bounded() -> None:
    t = np.linspace(1.0, 1e7, 200)
    plain = models.erfc_func(t, dT_inf=10.0, a=15.0)
    conv = models.erfc_convection_func(t, dT_inf=10.0, a=15.0, b=0.5)

    assert np.all(np.isfinite(conv))
    assert np.all(conv <= plain + 1e-9)
    assert np.all(conv >= -1e-9)


def test_convection_without_film_coefficient_vanishes() -> None:
    t = np.linspace(10.0, 5000.0, 20)
    out = models.erfc_convection_func(t, dT_inf=10.0, a=15.0, b=0.0)
    np.testing.assert_allclose(out, 0.0, atol=1e-12)


def test_default_models_ids_and_parameters() -> None:
    ms = models.default_models()

    assert list(ms) == ["exponential", "erfc", "erfc_convection"]
    assert ms["exponential"].param_names == ("dT_inf", "tau")
    assert ms["erfc"].param_names == ("dT_inf", "a")
    assert ms["erfc_convection"].param_names == ("dT_inf", "a", "b")
    for m in ms.values():
        assert all(v is not None for v in m.initial_guess.values())


def test_infer_param_names_rules() -> None:
    def ok(t, a, b=1.0):
        return a * t + b

    def star(t, *args):
        return t

    assert infer_param_names(ok) == ("a", "b")
    with pytest.raises(TypeError):
        infer_param_names(star)
    with pytest.raises(TypeError):
        infer_param_names(lambda t: t)
