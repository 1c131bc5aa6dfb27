"""Spreadsheet codec: row list <-> .xlsx bytes.

Only the first worksheet is read. The first row holds the column headers;
blank rows are skipped.
"""

from __future__ import annotations

import io
import zipfile
from collections.abc import Sequence
from typing import Any, Protocol

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

Row = dict[str, Any]


class CodecError(Exception):
    """Bytes could not be decoded as a workbook."""


class RowCodec(Protocol):
    """Opaque tabular codec used by the sync layer."""

    def decode(self, data: bytes) -> list[Row]: ...

    def encode(
        self, rows: Sequence[Row], columns: Sequence[str], sheet_name: str
    ) -> bytes: ...


class XlsxCodec:
    """openpyxl-backed codec for the calendar workbooks."""

    def decode(self, data: bytes) -> list[Row]:
        if not data:
            return []
        try:
            wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        except (zipfile.BadZipFile, InvalidFileException, KeyError, ValueError) as e:
            raise CodecError(str(e)) from e
        try:
            if not wb.sheetnames:
                return []
            ws = wb[wb.sheetnames[0]]
            rows = ws.iter_rows(values_only=True)
            header = next(rows, None)
            if header is None:
                return []
            columns = [str(h).strip() if h is not None else "" for h in header]

            result: list[Row] = []
            for values in rows:
                if all(v is None or v == "" for v in values):
                    continue
                result.append(
                    {col: value for col, value in zip(columns, values) if col}
                )
            return result
        finally:
            wb.close()

    def encode(
        self, rows: Sequence[Row], columns: Sequence[str], sheet_name: str
    ) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = sheet_name
        ws.append(list(columns))
        for row in rows:
            ws.append([row.get(col) for col in columns])

        output = io.BytesIO()
        wb.save(output)
        return output.getvalue()
