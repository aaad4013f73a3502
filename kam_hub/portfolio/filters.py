"""
Search and sort for the portfolio table.

Sorting follows the table header behaviour: clicking a new column sorts
it descending, clicking the same column again flips the direction.
"""

import logging
from typing import Optional, Tuple

import pandas as pd

from .constants import SEARCH_COLUMNS, SORT_ASC, SORT_DESC

logger = logging.getLogger(__name__)


def filter_portfolio(df: pd.DataFrame, search: Optional[str]) -> pd.DataFrame:
    """Keep rows whose name, id or locality contains the search text (case-insensitive)."""
    if df.empty or not search or not search.strip():
        return df

    needle = search.strip().lower()
    mask = pd.Series(False, index=df.index)
    for col in SEARCH_COLUMNS:
        if col in df.columns:
            mask |= df[col].fillna('').astype(str).str.lower().str.contains(needle, regex=False)

    return df[mask]


def sort_portfolio(df: pd.DataFrame, field: Optional[str], direction: str = SORT_DESC) -> pd.DataFrame:
    """
    Sort by one column. Text sorts case-insensitively, missing values last.
    Unknown or empty field leaves the order unchanged.
    """
    if df.empty or not field or field not in df.columns:
        return df

    ascending = direction == SORT_ASC
    key = None
    if pd.api.types.is_string_dtype(df[field]):
        key = lambda s: s.str.lower()

    return df.sort_values(
        field, ascending=ascending, na_position='last', key=key, kind='mergesort'
    )


def next_sort_state(current_field: Optional[str], current_direction: str,
                    field: str) -> Tuple[str, str]:
    """Sort state after a header click on field."""
    if current_field == field:
        return field, SORT_ASC if current_direction == SORT_DESC else SORT_DESC
    return field, SORT_DESC
