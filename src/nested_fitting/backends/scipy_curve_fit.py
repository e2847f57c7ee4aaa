from __future__ import annotations

import warnings
from typing import Any, Dict, Tuple

import numpy as np
from scipy.optimize import OptimizeWarning, curve_fit

from .common import BackendResult, check_inputs, failed


class ScipyCurveFitBackend:
    name = "scipy.curve_fit"

    def fit_one(
        self,
        *,
        model: Any,
        x: np.ndarray,
        y: np.ndarray,
        free_names: list[str],
        fixed_map: dict[str, float],
        p0: np.ndarray,
        bounds: Tuple[np.ndarray, np.ndarray],
        options: dict[str, Any],
    ) -> BackendResult:
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)

        reason = check_inputs(x, y, len(free_names))
        if reason is not None:
            return failed(p0, reason, self.name)

        maxfev = options.get("maxfev", None)
        kwargs: Dict[str, Any] = {}
        if maxfev is not None:
            kwargs["maxfev"] = int(maxfev)

        def f_wrapped(xi, *theta_free):
            kw = dict(fixed_map)
            for j, n in enumerate(free_names):
                kw[n] = float(theta_free[j])
            return model.eval(xi, **kw)

        try:
            with warnings.catch_warnings():
                # "Covariance could not be estimated" means a singular system.
                warnings.simplefilter("error", OptimizeWarning)
                popt, pcov, info, mesg, _ier = curve_fit(
                    f_wrapped,
                    x,
                    y,
                    p0=np.asarray(p0, dtype=float),
                    bounds=bounds,
                    full_output=True,
                    **kwargs,
                )
        except Exception as e:
            # Soft fail: the reason travels with the result.
            return failed(p0, f"{type(e).__name__}: {e}", self.name)

        popt = np.asarray(popt, dtype=float)
        pcov = np.asarray(pcov, dtype=float)
        if not np.all(np.isfinite(popt)):
            return failed(p0, "non-finite parameter estimates", self.name)
        if not np.all(np.isfinite(pcov)):
            return failed(p0, "covariance is not finite (singular system)", self.name)

        return BackendResult(
            theta=popt,
            cov=pcov,
            success=True,
            message=str(mesg) if mesg else "ok",
            stats={"backend": self.name, "nfev": int(info.get("nfev", 0))},
        )
