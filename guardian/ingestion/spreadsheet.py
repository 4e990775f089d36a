"""Spreadsheet extraction — every sheet as a CSV block headed by its name."""

from __future__ import annotations

import csv
import io
import logging

import pandas as pd

from guardian.models.source import SourceKind

logger = logging.getLogger(__name__)

CSV_SHEET_NAME = "Sheet1"

_EXCEL_ENGINES = {
    SourceKind.XLSX: "openpyxl",
    SourceKind.XLS: "xlrd",
}


def read_sheets(data: bytes, kind: SourceKind) -> dict[str, pd.DataFrame]:
    """Load all sheets in workbook order as header-less string frames."""
    if kind == SourceKind.CSV:
        # csv.reader tolerates ragged rows; the DataFrame pads them.
        text = data.decode("utf-8-sig", errors="replace")
        rows = list(csv.reader(io.StringIO(text)))
        return {CSV_SHEET_NAME: pd.DataFrame(rows)}

    engine = _EXCEL_ENGINES.get(kind)
    if engine is None:
        raise ValueError(f"Not a spreadsheet kind: {kind.value}")
    return pd.read_excel(
        io.BytesIO(data), sheet_name=None, header=None, dtype=str, engine=engine
    )


def sheet_to_csv(frame: pd.DataFrame) -> str:
    return frame.to_csv(index=False, header=False, lineterminator="\n").rstrip("\n")


def extract_workbook(data: bytes, kind: SourceKind) -> str:
    sheets = read_sheets(data, kind)
    logger.debug("Workbook sheets: %s", list(sheets))
    return "\n\n".join(
        f"--- Sheet: {name} ---\n{sheet_to_csv(frame)}" for name, frame in sheets.items()
    )
