"""Thermal-response models for the temperature rise dT(t) of a sensor.

All three are written in elapsed time ``t`` (seconds since the sensor's first
reading) and return 0 at ``t == 0``.
"""
from __future__ import annotations

from typing import Dict

import numpy as np
from scipy.special import erfc, erfcx

from .model import Model


def exponential_func(t, dT_inf=10.0, tau=600.0):
    """First-order relaxation: dT_inf * (1 - exp(-t / tau))."""
    t = np.asarray(t, dtype=float)
    return dT_inf * (1.0 - np.exp(-t / tau))


def erfc_func(t, dT_inf=10.0, a=20.0):
    """Semi-infinite conduction after a surface step: dT_inf * erfc(a / sqrt(t)).

    ``a`` lumps depth and diffusivity, a = x / (2 sqrt(alpha)).
    """
    t = np.asarray(t, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        out = dT_inf * erfc(a / np.sqrt(t))
    return np.where(t > 0, out, 0.0)


def erfc_convection_func(t, dT_inf=10.0, a=20.0, b=0.01):
    """Semi-infinite conduction with a convective surface.

    dT = dT_inf * (erfc(eta) - exp(2ab + b^2 t) * erfc(eta + b sqrt(t))),
    eta = a / sqrt(t), b = h sqrt(alpha) / k. The second term is evaluated as
    exp(-eta^2) * erfcx(eta + b sqrt(t)), which is the same quantity without
    the overflow of the exponential.
    """
    t = np.asarray(t, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        root_t = np.sqrt(t)
        eta = a / root_t
        out = dT_inf * (erfc(eta) - np.exp(-eta * eta) * erfcx(eta + b * root_t))
    return np.where(t > 0, out, 0.0)


def exponential(*, name: str = "exponential") -> Model:
    """Return the exponential relaxation Model."""
    return Model.from_function(exponential_func, name=name).bound(tau=(1e-9, None))


def erfc_diffusion(*, name: str = "erfc") -> Model:
    """Return the complementary-error-function diffusion Model."""
    return Model.from_function(erfc_func, name=name).bound(a=(0.0, None))


def erfc_convection(*, name: str = "erfc_convection") -> Model:
    """Return the diffusion Model with a convection correction (extra parameter b)."""
    return Model.from_function(erfc_convection_func, name=name).bound(
        a=(0.0, None), b=(0.0, None)
    )


def default_models() -> Dict[str, Model]:
    """The three thermal models keyed by model id, in reporting order."""
    out = {}
    for m in (exponential(), erfc_diffusion(), erfc_convection()):
        out[m.name] = m
    return out
