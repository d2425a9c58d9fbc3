"""Vector post-processing: dimension fitting and optional L2 normalisation.

Providers may return vectors longer or shorter than the library's target
dimension (a model swap, a dimension-adjustable model ignoring the
request).  Every stored vector is fitted to the target by zero-padding or
truncation so downstream similarity comparisons see one uniform size.
Values are never interpolated.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np


def fit_dimension(vector: Sequence[float], dimension: int) -> list[float]:
    """Zero-pad or truncate *vector* to exactly *dimension* entries."""
    if dimension <= 0:
        msg = f"dimension must be positive, got {dimension}"
        raise ValueError(msg)
    values = np.asarray(vector, dtype=np.float64)
    if values.shape[0] >= dimension:
        fitted = values[:dimension]
    else:
        fitted = np.concatenate([values, np.zeros(dimension - values.shape[0])])
    return fitted.tolist()


def l2_normalize(vector: Sequence[float]) -> list[float]:
    """Scale *vector* to unit length; an all-zero vector is returned as is."""
    values = np.asarray(vector, dtype=np.float64)
    norm = float(np.linalg.norm(values))
    if norm == 0.0:
        return values.tolist()
    return (values / norm).tolist()


def prepare_vector(vector: Sequence[float], dimension: int, normalize: bool = False) -> list[float]:
    """Fit to *dimension*, then L2-normalise when *normalize* is set."""
    fitted = fit_dimension(vector, dimension)
    return l2_normalize(fitted) if normalize else fitted
