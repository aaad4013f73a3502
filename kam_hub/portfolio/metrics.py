"""
Portfolio Calculations

Handles all metric calculations over loaded restaurants:
- One row per restaurant (drives, approached, converted, priority)
- Per-drive approach / conversion funnel
- Portfolio overview totals
"""

import logging
from typing import Dict, List

import numpy as np
import pandas as pd

from .constants import PORTFOLIO_COLUMNS
from .models import Restaurant

logger = logging.getLogger(__name__)

DRIVE_SUMMARY_COLUMNS = [
    'drive_id', 'drive_name', 'drive_type', 'restaurants', 'approached',
    'converted', 'approach_rate', 'conversion_rate',
]


class PortfolioMetrics:
    """
    KPI calculations for a restaurant portfolio.

    Usage:
        metrics = PortfolioMetrics(queries.list_restaurants())

        portfolio_df = metrics.to_dataframe()
        drives_df = metrics.drive_summary()
        overview = metrics.overview()
    """

    def __init__(self, restaurants: List[Restaurant]):
        self.restaurants = restaurants

    # =========================================================================
    # PORTFOLIO TABLE
    # =========================================================================

    def to_dataframe(self) -> pd.DataFrame:
        """One row per restaurant, columns as in PORTFOLIO_COLUMNS."""
        records = []
        for r in self.restaurants:
            priorities = [d.priority_score for d in r.drive_data if d.priority_score is not None]
            records.append({
                'res_id': r.res_id,
                'res_name': r.res_name,
                'locality': r.locality,
                'cuisine': r.cuisine,
                'account_type': r.account_type,
                'kam_name': r.kam_name,
                'sept_ov': r.sept_ov,
                'drives': len(r.drive_data),
                'approached': r.approached_count,
                'converted': r.converted_count,
                'max_priority': max(priorities) if priorities else np.nan,
            })

        return pd.DataFrame.from_records(records, columns=list(PORTFOLIO_COLUMNS.keys()))

    def drive_data_frame(self) -> pd.DataFrame:
        """Flat (restaurant, drive) rows."""
        records = []
        for r in self.restaurants:
            for d in r.drive_data:
                records.append({
                    'res_id': r.res_id,
                    'res_name': r.res_name,
                    'drive_id': d.drive_id,
                    'drive_name': d.drive_name,
                    'drive_type': d.drive.drive_type if d.drive else None,
                    'approached': d.approached,
                    'converted': d.converted_stepper,
                    'priority_score': d.priority_score,
                    'status': d.status,
                })

        return pd.DataFrame.from_records(records, columns=[
            'res_id', 'res_name', 'drive_id', 'drive_name', 'drive_type',
            'approached', 'converted', 'priority_score', 'status',
        ])

    # =========================================================================
    # DRIVE FUNNEL
    # =========================================================================

    def drive_summary(self) -> pd.DataFrame:
        """Approach and conversion rates per drive, busiest drive first."""
        df = self.drive_data_frame()
        if df.empty:
            return pd.DataFrame(columns=DRIVE_SUMMARY_COLUMNS)

        summary = (
            df.groupby(['drive_id', 'drive_name', 'drive_type'], dropna=False)
            .agg(
                restaurants=('res_id', 'nunique'),
                approached=('approached', 'sum'),
                converted=('converted', 'sum'),
            )
            .reset_index()
        )

        summary['approached'] = summary['approached'].astype(int)
        summary['converted'] = summary['converted'].astype(int)
        summary['approach_rate'] = np.where(
            summary['restaurants'] > 0,
            summary['approached'] / summary['restaurants'],
            0.0
        )
        summary['conversion_rate'] = np.where(
            summary['approached'] > 0,
            summary['converted'] / summary['approached'],
            0.0
        )

        summary = summary.sort_values(
            ['restaurants', 'drive_name'], ascending=[False, True]
        ).reset_index(drop=True)

        return summary[DRIVE_SUMMARY_COLUMNS]

    # =========================================================================
    # OVERVIEW
    # =========================================================================

    def overview(self) -> Dict:
        """Portfolio totals for the KPI cards."""
        df = self.drive_data_frame()

        total_rows = len(df)
        approached = int(df['approached'].sum()) if total_rows else 0
        converted = int(df['converted'].sum()) if total_rows else 0
        sept_ov = sum(r.sept_ov or 0.0 for r in self.restaurants)

        return {
            'total_restaurants': len(self.restaurants),
            'total_drive_rows': total_rows,
            'approached': approached,
            'converted': converted,
            'pending': total_rows - approached,
            'approach_rate': approached / total_rows if total_rows else 0.0,
            'conversion_rate': converted / approached if approached else 0.0,
            'total_sept_ov': sept_ov,
        }
