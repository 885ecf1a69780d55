"""Excel export of daily totals and the category logs."""

import logging
from pathlib import Path
from typing import Dict, List

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment
from openpyxl.utils import get_column_letter

from .ledger import LedgerStore
from .models import LOG_HEADER, FACTURA, TRANSACCION

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color="E6E6E6", end_color="E6E6E6", fill_type="solid")

TOTALS_HEADERS = ["Día", "Facturas (COP)", "# Facturas", "Transacciones (COP)", "# Transacciones"]


class LedgerExporter:
    """Export the ledger to a workbook for the operator's bookkeeping."""

    def __init__(self, output_path: Path):
        """
        Args:
            output_path: Path for the output Excel file
        """
        self.output_path = Path(output_path)
        self.workbook = Workbook()

    def export(self, ledger: LedgerStore) -> Path:
        """
        Write a totals sheet plus one sheet per log.

        Args:
            ledger: Ledger to read from

        Returns:
            Path of the written workbook
        """
        try:
            if "Sheet" in self.workbook.sheetnames:
                self.workbook.remove(self.workbook["Sheet"])

            self._create_totals_sheet(ledger)
            self._create_log_sheet("Facturas", ledger.category_logs[FACTURA].records())
            self._create_log_sheet("Transacciones", ledger.category_logs[TRANSACCION].records())
            self._create_log_sheet("No clasificadas", ledger.unclassified_log.records())

            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            self.workbook.save(str(self.output_path))
            logger.info(f"Excel file exported to: {self.output_path}")
            return self.output_path

        except Exception as e:
            logger.error(f"Failed to export Excel file: {e}")
            raise

    def _create_totals_sheet(self, ledger: LedgerStore):
        ws = self.workbook.create_sheet("Totales diarios")
        ws.cell(row=1, column=1, value=f"TOTALES DIARIOS ({ledger.timezone})").font = Font(bold=True, size=14)

        current_row = 3
        self._write_headers(ws, current_row, TOTALS_HEADERS)
        current_row += 1

        totals = ledger.all_totals()
        for key, day in totals.items():
            ws.cell(row=current_row, column=1, value=key)
            ws.cell(row=current_row, column=2, value=day.facturas_total)
            ws.cell(row=current_row, column=3, value=day.counts['facturas'])
            ws.cell(row=current_row, column=4, value=day.transacciones_total)
            ws.cell(row=current_row, column=5, value=day.counts['transacciones'])
            current_row += 1

        if totals:
            ws.cell(row=current_row, column=1, value="TOTAL").font = Font(bold=True)
            ws.cell(row=current_row, column=2, value=sum(d.facturas_total for d in totals.values()))
            ws.cell(row=current_row, column=3, value=sum(d.counts['facturas'] for d in totals.values()))
            ws.cell(row=current_row, column=4, value=sum(d.transacciones_total for d in totals.values()))
            ws.cell(row=current_row, column=5, value=sum(d.counts['transacciones'] for d in totals.values()))

        for i, width in enumerate([14, 18, 12, 20, 16], 1):
            ws.column_dimensions[get_column_letter(i)].width = width

        logger.info(f"Created totals sheet with {len(totals)} days")

    def _create_log_sheet(self, title: str, records: List[Dict[str, str]]):
        ws = self.workbook.create_sheet(title)
        df = pd.DataFrame(records, columns=LOG_HEADER)
        df['value_cop'] = pd.to_numeric(df['value_cop'], errors='coerce').astype('Int64')

        self._write_headers(ws, 1, LOG_HEADER)

        for row_idx, row in enumerate(df.itertuples(index=False), 2):
            for col_idx, value in enumerate(row, 1):
                # missing amounts show as empty cells
                ws.cell(row=row_idx, column=col_idx, value=None if pd.isna(value) else value)

        for i, width in enumerate([28, 10, 18, 14, 14, 9, 40, 40], 1):
            ws.column_dimensions[get_column_letter(i)].width = width

        logger.info(f"Created sheet '{title}' with {len(df)} rows")

    @staticmethod
    def _write_headers(ws, row: int, headers: List[str]):
        for col, header in enumerate(headers, 1):
            cell = ws.cell(row=row, column=col, value=header)
            cell.font = Font(bold=True)
            cell.fill = HEADER_FILL
            cell.alignment = Alignment(horizontal="center")
