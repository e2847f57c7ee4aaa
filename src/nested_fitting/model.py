from __future__ import annotations

from dataclasses import dataclass, replace
import inspect
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Tuple,
)

import numpy as np

from .backends import get_backend
from .params import ParameterSpec, ParamView, ParamsView
from .result import Fit, FitFailure, FitOutcome
from .util import infer_param_names


@dataclass(frozen=True)
class Model:
    """A named model function plus its parameter metadata.

    Models are immutable: ``guess``, ``bound`` and ``fix`` return new models,
    so one specification can be mapped over many groups without any of them
    seeing another's state.
    """

    name: str
    func: Callable[..., Any]
    param_names: Tuple[str, ...]
    params: Tuple[ParameterSpec, ...]

    # ---- constructor ----
    @staticmethod
    def from_function(
        func: Callable[..., Any], *, name: Optional[str] = None
    ) -> "Model":
        """Construct a Model from a plain function signature."""
        names = infer_param_names(func)

        # Numeric defaults in the function signature are initial guesses.
        sig = inspect.signature(func)
        specs = []
        for n in names:
            p = sig.parameters[n]
            g = None
            if p.default is not inspect.Parameter.empty:
                d = p.default
                if isinstance(d, (int, float, np.number)) and not isinstance(d, bool):
                    g = float(d)
            specs.append(ParameterSpec(name=n, guess=g))
        return Model(
            name=name or getattr(func, "__name__", "model"),
            func=func,
            param_names=names,
            params=tuple(specs),
        )

    # ---- evaluation ----
    def eval(
        self, x: Any, *, params: Optional[Mapping[str, Any]] = None, **kwargs
    ) -> Any:
        """Evaluate the model function at x with given parameters."""
        values: Dict[str, Any] = {}

        if params is not None:
            for k, v in params.items():
                values[k] = v.value if isinstance(v, ParamView) else v

        values.update(kwargs)

        for spec in self.params:
            if spec.fixed and spec.name not in values:
                values[spec.name] = spec.fixed_value

        missing = [n for n in self.param_names if n not in values]
        if missing:
            raise TypeError(f"Missing parameter values for: {missing}")

        args = [x] + [values[n] for n in self.param_names]
        return self.func(*args)

    # ---- builders (pure; return new model) ----
    def _updated(self, changes: Mapping[str, Dict[str, Any]]) -> "Model":
        m = {p.name: p for p in self.params}
        for k, fields in changes.items():
            if k not in m:
                raise KeyError(k)
            m[k] = replace(m[k], **fields)
        return replace(self, params=tuple(m[n] for n in self.param_names))

    def guess(self, **guesses: float) -> "Model":
        """Return a new Model with initial guesses set."""
        return self._updated({k: {"guess": float(g)} for k, g in guesses.items()})

    def bound(self, **bounds: Tuple[Optional[float], Optional[float]]) -> "Model":
        """Return a new Model with parameter bounds applied."""
        return self._updated({k: {"bounds": (b[0], b[1])} for k, b in bounds.items()})

    def fix(self, **fixed: float) -> "Model":
        """Return a new Model with parameters held at fixed values."""
        return self._updated(
            {k: {"fixed": True, "fixed_value": float(v)} for k, v in fixed.items()}
        )

    @property
    def initial_guess(self) -> Dict[str, float]:
        """Initial guesses for the free parameters (raises if any is missing)."""
        free_names, _ = _free_and_fixed(self.params)
        pmap = {p.name: p for p in self.params}
        missing = [n for n in free_names if pmap[n].guess is None]
        if missing:
            raise TypeError(
                f"Model {self.name!r} has no initial guess for {missing}; use .guess(...)."
            )
        return {n: float(pmap[n].guess) for n in free_names}  # type: ignore[arg-type]

    # ---- fitting ----
    def fit(
        self,
        x: Any,
        y: Any,
        *,
        backend: str = "scipy.curve_fit",
        backend_options: Optional[Dict[str, Any]] = None,
    ) -> FitOutcome:
        """Fit the model to (x, y) by nonlinear least squares.

        One attempt is made from the declared initial guesses. Numerical
        failures (non-convergence, a singular system, invalid values) come
        back as a FitFailure carrying the reason; they are never raised.
        Programmer errors (unknown backend, missing guesses) still raise.
        """
        be = get_backend(backend)
        backend_options = dict(backend_options or {})

        x_arr = np.asarray(x, dtype=float).reshape(-1)
        y_arr = np.asarray(y, dtype=float).reshape(-1)

        free_names, fixed_map = _free_and_fixed(self.params)
        p0_map = self.initial_guess
        p0 = np.array([p0_map[n] for n in free_names], dtype=float)
        bounds = _bounds_for_free(self.params, free_names)
        # curve_fit rejects a starting point outside the bounds
        p0 = np.clip(p0, bounds[0], bounds[1])

        r = be.fit_one(
            model=self,
            x=x_arr,
            y=y_arr,
            free_names=free_names,
            fixed_map=fixed_map,
            p0=p0,
            bounds=bounds,
            options=backend_options,
        )
        if not r.success:
            return FitFailure(model=self.name, reason=r.message, backend=be.name)

        values: Dict[str, float] = dict(fixed_map)
        for j, n in enumerate(free_names):
            values[n] = float(r.theta[j])

        return Fit(
            model=self,
            params=ParamsView.build(
                self.params, values, cov=r.cov, free_names=tuple(free_names)
            ),
            x=x_arr,
            y=y_arr,
            cov=r.cov,
            backend=be.name,
            message=r.message,
            stats=dict(r.stats),
        )


def _free_and_fixed(
    params: Tuple[ParameterSpec, ...]
) -> Tuple[List[str], Dict[str, float]]:
    """Split parameters into free names and fixed name->value mapping."""
    free: List[str] = []
    fixed: Dict[str, float] = {}
    for p in params:
        if p.fixed:
            if p.fixed_value is None:
                raise ValueError(f"Parameter {p.name} is fixed but has no fixed_value.")
            fixed[p.name] = float(p.fixed_value)
        else:
            free.append(p.name)
    return free, fixed


def _bounds_for_free(
    params: Tuple[ParameterSpec, ...], free_names: List[str]
) -> Tuple[np.ndarray, np.ndarray]:
    """Return (lo, hi) arrays of bounds for free parameters."""
    pmap = {p.name: p for p in params}
    lo: List[float] = []
    hi: List[float] = []
    for n in free_names:
        b = pmap[n].bounds
        if b is None:
            lo.append(-np.inf)
            hi.append(np.inf)
        else:
            lo.append(-np.inf if b[0] is None else float(b[0]))
            hi.append(np.inf if b[1] is None else float(b[1]))
    return (np.array(lo, dtype=float), np.array(hi, dtype=float))

