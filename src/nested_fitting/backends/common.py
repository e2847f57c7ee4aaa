from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Tuple

import numpy as np


@dataclass(frozen=True)
class BackendResult:
    """Normalized result returned by any backend."""

    theta: np.ndarray  # free parameters, shape (P,)
    cov: Optional[np.ndarray] = None  # free-parameter covariance, (P,P)
    success: bool = True
    message: str = ""
    stats: Dict[str, Any] = field(default_factory=dict)


class Backend(Protocol):
    """Backend protocol: fit one (x, y) series, never raising on solver failure."""

    name: str

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
    ) -> BackendResult: ...


def failed(p0: np.ndarray, message: str, backend: str) -> BackendResult:
    """A soft-fail result carrying the seed point and the reason."""
    return BackendResult(
        theta=np.asarray(p0, dtype=float),
        cov=None,
        success=False,
        message=message,
        stats={"backend": backend, "error": message},
    )


def check_inputs(
    x: np.ndarray, y: np.ndarray, n_free: int
) -> Optional[str]:
    """Return a failure reason if (x, y) cannot support a fit, else None."""
    if x.shape != y.shape:
        return f"x and y differ in shape: {x.shape} vs {y.shape}"
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        return "x or y contains non-finite values"
    if y.size < n_free:
        return f"{y.size} points cannot determine {n_free} free parameters"
    if y.size and float(np.ptp(y)) == 0.0:
        return "response is constant; parameters are not identifiable"
    return None
