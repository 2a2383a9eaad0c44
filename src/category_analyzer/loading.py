from __future__ import annotations

import io
import logging
from typing import List, Optional

import pandas as pd

__all__ = ["load_records", "records_from_frame", "EXCEL_EXTENSIONS"]

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = {"xlsx", "xlsm", "xls"}

FileLike = io.BufferedIOBase | io.BytesIO | io.StringIO | io.TextIOBase


def _get_file_extension(file_obj: FileLike, source_name: Optional[str] = None) -> str:
    name = source_name or getattr(file_obj, "name", "") or ""
    if not isinstance(name, str):
        return ""
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def _remember_position(file_obj: FileLike) -> Optional[int]:
    if hasattr(file_obj, "tell") and hasattr(file_obj, "seek"):
        try:
            return file_obj.tell()
        except (OSError, io.UnsupportedOperation):
            return None
    return None


def _restore_position(file_obj: FileLike, position: Optional[int]) -> None:
    if position is None:
        return
    try:
        file_obj.seek(position)
    except (OSError, io.UnsupportedOperation):
        pass


def _read_text(file_obj: FileLike) -> str:
    """Return UTF-8 text from a file-like object."""
    raw = file_obj.read()
    if isinstance(raw, bytes):
        return raw.decode("utf-8-sig")
    return raw.lstrip("\ufeff")


def records_from_frame(frame: pd.DataFrame) -> List[dict]:
    frame = frame.rename(columns=lambda column: str(column).strip())
    return frame.to_dict(orient="records")


def _read_excel(file_obj: FileLike) -> pd.DataFrame:
    try:
        frame = pd.read_excel(file_obj, sheet_name=0, dtype=object)
    except Exception as exc:
        raise ValueError(f"Could not read data from the Excel file: {exc}") from exc
    return frame.fillna("")


def _read_csv(file_obj: FileLike) -> pd.DataFrame:
    text = _read_text(file_obj)
    if not text.strip():
        return pd.DataFrame()
    try:
        return pd.read_csv(
            io.StringIO(text.strip()),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except (pd.errors.ParserError, UnicodeDecodeError) as exc:
        raise ValueError(f"Could not parse CSV data: {exc}") from exc


def load_records(file_obj: FileLike, source_name: Optional[str] = None) -> List[dict]:
    """Read an uploaded CSV or Excel file into a list of column → value records.

    Excel workbooks contribute only their first sheet.
    """
    extension = _get_file_extension(file_obj, source_name)
    position = _remember_position(file_obj)
    if position is not None:
        _restore_position(file_obj, 0)

    try:
        if extension in EXCEL_EXTENSIONS:
            frame = _read_excel(file_obj)
        else:
            frame = _read_csv(file_obj)
    finally:
        _restore_position(file_obj, position)

    records = records_from_frame(frame)
    logger.debug("Loaded %d record(s) from %s", len(records), source_name or extension or "upload")
    return records
