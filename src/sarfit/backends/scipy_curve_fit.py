from __future__ import annotations

import warnings
from typing import Any, Dict, Tuple

import numpy as np
from scipy.optimize import OptimizeWarning, curve_fit

from .common import FitAttempt, finish_attempt


class ScipyCurveFitBackend:
    name = "scipy.curve_fit"

    def fit_one(
        self,
        *,
        model: Any,
        data: Any,
        p0: np.ndarray,
        bounds: Tuple[np.ndarray, np.ndarray],
        options: Dict[str, Any],
    ) -> FitAttempt:
        """Bounded nonlinear least squares via scipy.optimize.curve_fit.

        Backend options:
        - maxfev: function evaluation budget (default: 5000)
        """
        p0 = np.asarray(p0, dtype=float)
        maxfev = int(options.get("maxfev", 5000))

        def f_wrapped(a, *theta):
            return model.evaluate(theta, a)

        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", OptimizeWarning)
                warnings.simplefilter("ignore", RuntimeWarning)
                popt, _pcov, info, mesg, _ier = curve_fit(
                    f_wrapped,
                    data.area,
                    data.richness,
                    p0=p0,
                    bounds=bounds,
                    method="trf",
                    max_nfev=maxfev,
                    full_output=True,
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
            popt,
            success=True,
            message=str(mesg),
            nfev=int(info.get("nfev", 0)) if isinstance(info, dict) else 0,
        )
