from __future__ import annotations

import math
from typing import Any, Dict, Tuple

import numpy as np
from scipy.optimize import minimize

from .common import FitAttempt, finish_attempt


class ScipyMinimizeBackend:
    name = "scipy.minimize"

    def fit_one(
        self,
        *,
        model: Any,
        data: Any,
        p0: np.ndarray,
        bounds: Tuple[np.ndarray, np.ndarray],
        options: Dict[str, Any],
    ) -> FitAttempt:
        """Minimise the residual sum of squares with scipy.optimize.minimize.

        Backend options:
        - maxfev: function evaluation budget (default: 5000)
        - method: optimizer name (default: Nelder-Mead)
        """
        p0 = np.asarray(p0, dtype=float)
        lo, hi = bounds
        scipy_bounds = []
        for i in range(int(p0.shape[0])):
            lo_i = float(lo[i])
            hi_i = float(hi[i])
            lo_b = None if (not math.isfinite(lo_i)) else lo_i
            hi_b = None if (not math.isfinite(hi_i)) else hi_i
            scipy_bounds.append((lo_b, hi_b))

        method = str(options.get("method", "Nelder-Mead"))
        maxfev = int(options.get("maxfev", 5000))

        def objective(theta: np.ndarray) -> float:
            return model.residual_sum_of_squares(np.asarray(theta, dtype=float), data)

        try:
            res = minimize(
                objective,
                p0,
                method=method,
                bounds=scipy_bounds,
                options={"maxfev": maxfev, "maxiter": maxfev},
            )
        except Exception as e:
            # Soft fail: return seed point.
            return FitAttempt(
                start=p0.copy(),
                theta=p0.copy(),
                rss=float("inf"),
                converged=False,
                message=str(e),
            )
        return finish_attempt(
            model,
            data,
            p0,
            res.x,
            success=bool(res.success),
            message=str(res.message),
            nfev=int(getattr(res, "nfev", 0)),
        )
