"""Shared type aliases for the bowker_exact package."""

from collections.abc import Sequence

import numpy as np
import pandas as pd

# Count-matrix inputs accepted wherever a FrequencyTable is expected.
ArrayLike = np.ndarray | pd.DataFrame | Sequence[Sequence[float]]

# One candidate value per non-degenerate cell pair, in pair order.
Assignment = tuple[int, ...]
