from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

import numpy as np

from .util import frozen_mapping, readonly


@dataclass(frozen=True)
class SARData:
    """An observation set: (area, richness) pairs sorted ascending by area.

    Build it with `SARData.from_table(...)` (or `SARData.from_arrays(...)`),
    which validates the input and sorts it. Arrays are read-only.
    """

    area: np.ndarray
    richness: np.ndarray

    # Metadata for downstream collaborators (plots, reports)
    area_label: Optional[str] = None
    richness_label: Optional[str] = None
    meta: Mapping[str, Any] = field(default_factory=frozen_mapping)

    @staticmethod
    def from_table(
        table: Any,
        *,
        area_label: Optional[str] = None,
        richness_label: Optional[str] = None,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> "SARData":
        """Validate a two-column (area, richness) table and sort it by area."""
        if isinstance(table, SARData):
            return table
        if table is None or np.isscalar(table):
            raise TypeError("data must be a two-column table of (area, richness).")

        columns = getattr(table, "columns", None)
        if columns is not None and len(columns) == 2:
            if area_label is None:
                area_label = str(columns[0])
            if richness_label is None:
                richness_label = str(columns[1])

        arr = np.asarray(table)
        if arr.ndim != 2 or arr.shape[1] != 2:
            raise TypeError(
                "data must be a two-column table of (area, richness); "
                f"got shape {arr.shape}."
            )
        return SARData.from_arrays(
            arr[:, 0],
            arr[:, 1],
            area_label=area_label,
            richness_label=richness_label,
            meta=meta,
        )

    @staticmethod
    def from_arrays(
        area: Any,
        richness: Any,
        *,
        area_label: Optional[str] = None,
        richness_label: Optional[str] = None,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> "SARData":
        """Validate separate area and richness sequences."""
        try:
            a = np.asarray(area, dtype=float).reshape(-1)
            s = np.asarray(richness, dtype=float).reshape(-1)
        except (TypeError, ValueError) as exc:
            raise TypeError("area and richness must be numeric.") from exc

        if a.shape != s.shape:
            raise ValueError(
                f"area and richness must have equal length; got {a.size} and {s.size}."
            )
        if a.size < 2:
            raise ValueError("At least two observations are required.")
        if np.isnan(a).any() or np.isnan(s).any():
            raise ValueError("NaNs present in data")
        if not np.all(np.isfinite(a)) or np.any(a <= 0.0):
            raise ValueError("All area values must be finite and strictly positive.")
        if not np.all(np.isfinite(s)) or np.any(s < 0.0):
            raise ValueError("All richness values must be finite and non-negative.")

        order = np.argsort(a, kind="stable")
        return SARData(
            area=readonly(a[order]),
            richness=readonly(s[order]),
            area_label=area_label,
            richness_label=richness_label,
            meta=frozen_mapping(meta),
        )

    @property
    def n(self) -> int:
        return int(self.area.shape[0])

    @property
    def tss(self) -> float:
        """Total sum of squares of richness about its mean."""
        s = self.richness
        return float(np.sum((s - np.mean(s)) ** 2))

    @property
    def identical_richness(self) -> bool:
        return bool(np.all(self.richness == self.richness[0]))

    def as_table(self) -> np.ndarray:
        """Return an (n, 2) array of (area, richness)."""
        return np.column_stack([self.area, self.richness])

    def with_labels(
        self,
        *,
        area_label: Optional[str] = None,
        richness_label: Optional[str] = None,
    ) -> "SARData":
        """Return a copy with updated label fields."""
        return replace(
            self,
            area_label=self.area_label if area_label is None else area_label,
            richness_label=(
                self.richness_label if richness_label is None else richness_label
            ),
        )
