from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np
from numpy.typing import NDArray

# Flat parameter and value vectors are always float64.
type FloatArray = NDArray[np.float64]
type ArrayLike = float | Sequence[float] | np.ndarray | np.floating

# theta -> values, as seen by an optimizer
type ObjectiveFunction = Callable[[FloatArray], FloatArray]
