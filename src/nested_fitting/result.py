from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

from .params import ParamsView
from .util import level_to_conf_int, sample_mvn, uncertainty_to_string


@dataclass(frozen=True)
class Band:
    low: np.ndarray
    high: np.ndarray
    median: Optional[np.ndarray] = None


@dataclass(frozen=True)
class FitFailure:
    """The absence marker for a fit that did not produce estimates.

    Keeps the solver's reason so failed (model, group) pairs can be
    inspected after a batch run.
    """

    model: str
    reason: str
    backend: str = ""

    ok = False

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"FitFailure(model={self.model!r}, reason={self.reason!r})"


@dataclass(frozen=True, eq=False)
class Fit:
    """A converged nonlinear least-squares fit of one model to one series."""

    model: Any  # Model
    params: ParamsView
    x: np.ndarray
    y: np.ndarray
    cov: Optional[np.ndarray] = None
    backend: str = ""
    message: str = ""
    stats: Dict[str, Any] = field(default_factory=dict)

    ok = True

    def __getitem__(self, name: str):
        return self.params[name]

    def __repr__(self) -> str:
        return f"Fit(model={self.model.name!r}, nobs={self.nobs}, params={self.params!r})"

    # ---- prediction ----
    def predict(self, x: Any = None) -> np.ndarray:
        """Evaluate the model at `x` (default: the training points)."""
        if x is None:
            x = self.x
        return np.asarray(self.model.eval(x, params=self.params), dtype=float)

    @property
    def fitted(self) -> np.ndarray:
        return self.predict(self.x)

    @property
    def residuals(self) -> np.ndarray:
        """y - f(x) at the training points, aligned with x."""
        return self.y - self.fitted

    # ---- goodness of fit ----
    @property
    def nobs(self) -> int:
        return int(self.y.size)

    @property
    def n_free(self) -> int:
        return sum(1 for pv in self.params.values() if not pv.fixed)

    @property
    def rss(self) -> float:
        r = self.residuals
        return float(np.sum(r * r))

    @property
    def sigma(self) -> float:
        """Residual standard error, sqrt(rss / (n - p))."""
        dof = self.nobs - self.n_free
        if dof <= 0:
            return float("nan")
        return float(np.sqrt(self.rss / dof))

    def log_likelihood(self) -> float:
        """Gaussian log-likelihood at the ML noise variance rss / n."""
        n = self.nobs
        rss = self.rss
        if n == 0 or rss <= 0.0:
            return float("inf")
        return float(-0.5 * n * (np.log(2.0 * np.pi * rss / n) + 1.0))

    @property
    def aic(self) -> float:
        # noise variance counts as one estimated parameter
        return float(-2.0 * self.log_likelihood() + 2.0 * (self.n_free + 1))

    @property
    def bic(self) -> float:
        return float(
            -2.0 * self.log_likelihood() + np.log(self.nobs) * (self.n_free + 1)
        )

    # ---- uncertainty ----
    def band(
        self,
        x: Any,
        *,
        nsamples: int = 400,
        level: Optional[float] = None,
        conf_int: Optional[Tuple[float, float]] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> Band:
        """Predictive band at x from parameter samples drawn with the fit covariance."""
        if rng is None:
            rng = np.random.default_rng()

        if level is None and conf_int is None:
            level = 2.0
        if level is not None and conf_int is not None:
            raise ValueError("Provide only one of level= or conf_int=.")

        if conf_int is None:
            qlo, qhi = level_to_conf_int(float(level))
        else:
            qlo, qhi = conf_int

        if self.cov is None:
            raise ValueError("No covariance available for band().")

        free_names = [p.name for p in self.model.params if not p.fixed]
        if not free_names:
            raise ValueError("No free parameters; cannot compute band().")
        if int(nsamples) <= 0:
            raise ValueError("nsamples must be >= 1.")

        mean = np.array([float(self.params[n].value) for n in free_names], dtype=float)
        theta = sample_mvn(mean, np.asarray(self.cov, dtype=float), int(nsamples), rng)

        fixed = {p.name: p.fixed_value for p in self.model.params if p.fixed}
        preds = []
        for s in range(theta.shape[0]):
            p = {name: theta[s, j] for j, name in enumerate(free_names)}
            preds.append(np.asarray(self.model.eval(x, **fixed, **p)))
        preds = np.stack(preds, axis=0)

        lo = np.nanquantile(preds, qlo, axis=0)
        hi = np.nanquantile(preds, qhi, axis=0)
        med = np.nanquantile(preds, 0.5, axis=0)
        return Band(low=lo, high=hi, median=med)

    def summary(self, digits: int = 4) -> str:
        """Return a human-readable summary string for the fit."""
        lines = [f"Fit(model={self.model.name!r}, backend={self.backend!r}, nobs={self.nobs})"]
        for name, pv in self.params.items():
            tag = " (fixed)" if pv.fixed else ""
            if pv.stderr is None:
                lines.append(f"  {name:>12s}: {pv.value:.{digits}g}{tag}")
            else:
                lines.append(
                    f"  {name:>12s}: {uncertainty_to_string(pv.value, pv.stderr, 'auto')}{tag}"
                )
        lines.append(f"  {'sigma':>12s}: {self.sigma:.{digits}g}")
        return "\n".join(lines)


FitOutcome = Union[Fit, FitFailure]


def is_success(outcome: Any) -> bool:
    """True for a converged Fit, False for a FitFailure (or anything else)."""
    return isinstance(outcome, Fit)
