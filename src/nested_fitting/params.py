from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

import numpy as np
import uncertainties


__all__ = [
    "ParameterSpec",
    "ParamView",
    "ParamsView",
]


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    fixed: bool = False
    fixed_value: Optional[float] = None
    bounds: Optional[Tuple[Optional[float], Optional[float]]] = None
    # Initial value handed to the optimiser
    guess: Optional[float] = None


@dataclass
class _CorrelationContext:
    """Shared covariance for the free parameters of one fit.

    Correlated ufloats are built lazily, once, and handed out per name so
    that arithmetic across parameters of the same fit propagates covariance.
    """

    values: Mapping[str, float]
    cov: Optional[np.ndarray]
    free_names: Tuple[str, ...]
    _cache: Optional[Dict[str, Any]] = field(default=None, init=False, repr=False)

    def u_for(self, name: str) -> Optional[Any]:
        if name not in self.free_names or self.cov is None:
            return None
        if self._cache is None:
            cov = np.asarray(self.cov, dtype=float)
            if cov.shape != (len(self.free_names), len(self.free_names)):
                return None
            vals = [float(self.values[n]) for n in self.free_names]
            try:
                corr = uncertainties.correlated_values(vals, cov)
            except (ValueError, np.linalg.LinAlgError):
                return None
            self._cache = dict(zip(self.free_names, corr))
        return self._cache.get(name)


@dataclass(frozen=True)
class ParamView:
    """A single fitted parameter."""

    name: str
    value: float
    stderr: Optional[float] = None
    fixed: bool = False
    bounds: Optional[Tuple[Optional[float], Optional[float]]] = None
    _context: Optional[_CorrelationContext] = field(
        default=None, repr=False, compare=False
    )

    @property
    def u(self):
        """Return an uncertainties ufloat, correlated with its sibling parameters."""
        if self.stderr is None:
            raise ValueError(f"No stderr available for parameter {self.name!r}.")
        if not np.isfinite(self.stderr):
            raise ValueError(f"stderr for {self.name!r} is not finite.")
        if self._context is not None:
            correlated = self._context.u_for(self.name)
            if correlated is not None:
                return correlated
        return uncertainties.ufloat(self.value, self.stderr)

    def __getitem__(self, key: str) -> Any:
        if key == "value":
            return self.value
        if key in ("error", "stderr"):
            return self.stderr
        if key == "fixed":
            return self.fixed
        if key == "bounds":
            return self.bounds
        raise KeyError(key)


class ParamsView(Mapping[str, ParamView]):
    """Read-only, ordered mapping of parameter name -> ParamView."""

    def __init__(self, items: Mapping[str, ParamView]):
        self._items: Dict[str, ParamView] = dict(items)

    def __getitem__(self, key):  # type: ignore[override]
        if isinstance(key, int):
            return list(self._items.values())[key]
        return self._items[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        body = ", ".join(f"{k}={v.value:.6g}" for k, v in self._items.items())
        return f"ParamsView({body})"

    def values_dict(self) -> Dict[str, float]:
        """Plain name -> value mapping (fixed parameters included)."""
        return {k: float(v.value) for k, v in self._items.items()}

    @staticmethod
    def build(
        specs: Tuple[ParameterSpec, ...],
        values: Mapping[str, float],
        *,
        cov: Optional[np.ndarray] = None,
        free_names: Tuple[str, ...] = (),
    ) -> "ParamsView":
        """Assemble views from parameter specs, fitted values and covariance."""
        stderr: Dict[str, float] = {}
        if cov is not None:
            diag = np.diag(np.asarray(cov, dtype=float))
            for j, n in enumerate(free_names):
                stderr[n] = float(np.sqrt(diag[j])) if diag[j] >= 0 else float("nan")

        ctx = _CorrelationContext(values=dict(values), cov=cov, free_names=free_names)
        items: Dict[str, ParamView] = {}
        for spec in specs:
            items[spec.name] = ParamView(
                name=spec.name,
                value=float(values[spec.name]),
                stderr=stderr.get(spec.name),
                fixed=spec.fixed,
                bounds=spec.bounds,
                _context=ctx,
            )
        return ParamsView(items)
