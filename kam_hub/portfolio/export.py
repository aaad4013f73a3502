"""
Portfolio Export

- CSV of the table as currently filtered/sorted
- Formatted Excel report with overview, portfolio and drive summary sheets

Uses openpyxl for formatting capabilities.
"""

import logging
from datetime import datetime
from io import BytesIO
from typing import Dict, Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from openpyxl.utils import get_column_letter

from .constants import EXCEL_STYLES, PORTFOLIO_COLUMNS

logger = logging.getLogger(__name__)

DRIVE_SUMMARY_HEADERS = {
    'drive_id': 'Drive ID',
    'drive_name': 'Drive',
    'drive_type': 'Type',
    'restaurants': 'Restaurants',
    'approached': 'Approached',
    'converted': 'Converted',
    'approach_rate': 'Approach Rate',
    'conversion_rate': 'Conversion Rate',
}


class PortfolioExport:
    """
    Export helpers for the portfolio page.

    Usage:
        exporter = PortfolioExport()
        st.download_button("CSV", exporter.to_csv_bytes(table_df), "portfolio.csv")

        excel_bytes = exporter.create_report(portfolio_df, drives_df, overview, user_email)
    """

    def __init__(self):
        self.wb = None
        self._init_styles()

    def _init_styles(self):
        self.header_fill = PatternFill(
            start_color=EXCEL_STYLES['header_fill_color'],
            end_color=EXCEL_STYLES['header_fill_color'],
            fill_type='solid'
        )
        self.header_font = Font(bold=True, color=EXCEL_STYLES['header_font_color'], size=11)
        self.title_font = Font(bold=True, size=16)
        self.label_font = Font(bold=True, size=11)

        thin = Side(style='thin', color='000000')
        self.cell_border = Border(left=thin, right=thin, top=thin, bottom=thin)
        self.center_align = Alignment(horizontal='center', vertical='center')

        self.currency_format = EXCEL_STYLES['currency_format']
        self.percent_format = EXCEL_STYLES['percent_format']

    # =========================================================================
    # CSV
    # =========================================================================

    @staticmethod
    def to_csv_bytes(df: pd.DataFrame) -> bytes:
        """Table as CSV with display headers."""
        renamed = df.rename(columns=PORTFOLIO_COLUMNS)
        return renamed.to_csv(index=False).encode('utf-8')

    # =========================================================================
    # EXCEL
    # =========================================================================

    def create_report(self, portfolio_df: pd.DataFrame, drive_summary_df: pd.DataFrame,
                      overview: Dict, generated_for: Optional[str] = None) -> BytesIO:
        """
        Create formatted Excel report.

        Returns:
            BytesIO containing the xlsx file
        """
        self.wb = Workbook()

        self._create_overview_sheet(overview, generated_for)
        self._create_table_sheet('Portfolio', portfolio_df, PORTFOLIO_COLUMNS,
                                 currency_cols=['sept_ov'])
        self._create_table_sheet('Drives', drive_summary_df, DRIVE_SUMMARY_HEADERS,
                                 percent_cols=['approach_rate', 'conversion_rate'])

        if 'Sheet' in self.wb.sheetnames:
            del self.wb['Sheet']

        output = BytesIO()
        self.wb.save(output)
        output.seek(0)

        logger.info(f"📥 Portfolio report created: {len(portfolio_df)} restaurants")
        return output

    def _create_overview_sheet(self, overview: Dict, generated_for: Optional[str]):
        ws = self.wb.create_sheet('Overview')

        ws['A1'] = 'Restaurant Portfolio Report'
        ws['A1'].font = self.title_font
        ws['A2'] = f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}"
        if generated_for:
            ws['A3'] = f"For: {generated_for}"

        rows = [
            ('Restaurants', overview.get('total_restaurants', 0), None),
            ('Drive assignments', overview.get('total_drive_rows', 0), None),
            ('Approached', overview.get('approached', 0), None),
            ('Converted', overview.get('converted', 0), None),
            ('Pending', overview.get('pending', 0), None),
            ('Approach rate', overview.get('approach_rate', 0.0), self.percent_format),
            ('Conversion rate', overview.get('conversion_rate', 0.0), self.percent_format),
            ('Sept OV', overview.get('total_sept_ov', 0.0), self.currency_format),
        ]

        for offset, (label, value, fmt) in enumerate(rows):
            row = 5 + offset
            ws.cell(row=row, column=1, value=label).font = self.label_font
            cell = ws.cell(row=row, column=2, value=value)
            if fmt:
                cell.number_format = fmt

        ws.column_dimensions['A'].width = 22
        ws.column_dimensions['B'].width = 18

    def _create_table_sheet(self, title: str, df: pd.DataFrame, headers: Dict[str, str],
                            currency_cols=(), percent_cols=()):
        ws = self.wb.create_sheet(title)
        columns = [c for c in headers if c in df.columns]

        for col_idx, col in enumerate(columns, start=1):
            cell = ws.cell(row=1, column=col_idx, value=headers[col])
            cell.fill = self.header_fill
            cell.font = self.header_font
            cell.alignment = self.center_align
            cell.border = self.cell_border
            ws.column_dimensions[get_column_letter(col_idx)].width = max(12, len(headers[col]) + 4)

        for row_idx, record in enumerate(df[columns].itertuples(index=False), start=2):
            for col_idx, (col, value) in enumerate(zip(columns, record), start=1):
                if pd.isna(value):
                    value = None
                elif hasattr(value, 'item'):  # numpy scalar
                    value = value.item()
                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                cell.border = self.cell_border
                if col in currency_cols:
                    cell.number_format = self.currency_format
                elif col in percent_cols:
                    cell.number_format = self.percent_format

        ws.freeze_panes = 'A2'
