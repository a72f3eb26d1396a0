"""Plain table backend: a pandas DataFrame of strings."""

from __future__ import annotations

import pandas as pd

from balancetable.backends.base import RenderOptions
from balancetable.models import TableBody

__all__ = ["render"]


def render(body: TableBody, options: RenderOptions) -> pd.DataFrame:
    """Return the body grid as a DataFrame with a fresh RangeIndex.

    Title, notes and alignment have no representation in a DataFrame and are
    ignored.
    """
    frame = body.data.copy()
    frame.columns = body.columns
    return frame.reset_index(drop=True)
