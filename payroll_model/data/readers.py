# payroll_model/data/readers.py
"""
Functions for reading input data files (payroll and absence spreadsheets).
"""

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from payroll_model.engines.normalizer import ROW_INDEX_KEY, FIRST_DATA_ROW, normalize_ci, parse_date, parse_money, ParseError
from payroll_model.schema.mapping import normalize_header

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_SUFFIXES = {".csv", ".txt"}


# Define a custom exception for data reading errors
class DataReadError(Exception):
    """Custom exception for errors during data reading."""
    pass


@dataclass
class PayrollFile:
    """Headers and raw rows of one uploaded payroll file."""

    path: Path
    headers: List[str]
    rows: List[Dict[str, Any]]


@dataclass(frozen=True)
class AbsenceRecord:
    name: str
    ci: str
    company: str = ""
    department: str = ""
    job_title: str = ""
    request_type: str = ""
    reason: str = ""
    justification: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    days: float = 0.0

    @property
    def is_vacation(self) -> bool:
        return "vacacion" in self.request_type.lower().replace("ó", "o")


def make_unique_headers(raw_headers: Sequence[Any]) -> List[str]:
    """Numbers repeated headers: ["Bono", "Bono"] -> ["Bono", "Bono (2)"]. Blank stays ''."""
    counts: Dict[str, int] = {}
    headers = []
    for raw in raw_headers:
        name = normalize_header(raw)
        if not name:
            headers.append("")
            continue
        counts[name] = counts.get(name, 0) + 1
        headers.append(name if counts[name] == 1 else f"{name} ({counts[name]})")
    return headers


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, float) and pd.isna(value)) or (isinstance(value, str) and not value.strip())


def _detect_delimiter(file_path: Path, encoding: str) -> str:
    with open(file_path, "r", encoding=encoding) as f:
        first_line = f.readline()
    return ";" if ";" in first_line else ","


def _read_raw_table(file_path: Path) -> pd.DataFrame:
    """Whole sheet as strings/objects, header row included as row 0."""
    suffix = file_path.suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        return pd.read_excel(file_path, sheet_name=0, header=None, dtype=object)
    if suffix in CSV_SUFFIXES:
        for encoding in ("utf-8-sig", "latin-1"):
            try:
                sep = _detect_delimiter(file_path, encoding)
                return pd.read_csv(
                    file_path, sep=sep, header=None, dtype=str,
                    keep_default_na=False, encoding=encoding, skip_blank_lines=True,
                )
            except UnicodeDecodeError:
                logger.debug(f"{file_path} is not {encoding}; trying next encoding")
        raise DataReadError(f"Could not decode {file_path}")
    raise DataReadError(f"Unsupported payroll file format: {file_path.suffix}")


def read_payroll_file(file_path: Union[str, Path]) -> PayrollFile:
    """
    Reads a payroll CSV or Excel file (first sheet) into raw rows.

    The first row holds the headers; repeated headers get a " (n)" suffix.
    Each row carries its spreadsheet row number under ``_rowIndex`` and
    completely blank rows are dropped.

    Raises:
        DataReadError: If the file cannot be found, read, or holds no header row.
    """
    if not isinstance(file_path, Path):
        file_path = Path(file_path)

    logger.info(f"Attempting to read payroll data from: {file_path}")
    if not file_path.exists():
        logger.error(f"Payroll file not found: {file_path}")
        raise DataReadError(f"Payroll file not found: {file_path}")

    try:
        table = _read_raw_table(file_path)
    except DataReadError:
        raise
    except (OSError, ValueError) as e:
        logger.exception(f"An unexpected error occurred while reading payroll data from {file_path}")
        raise DataReadError(f"Unexpected error reading data from {file_path}") from e

    if table.empty:
        raise DataReadError(f"The file is empty: {file_path}")

    headers = make_unique_headers(table.iloc[0].tolist())
    rows: List[Dict[str, Any]] = []
    for position, values in enumerate(table.iloc[1:].itertuples(index=False, name=None)):
        row: Dict[str, Any] = {ROW_INDEX_KEY: position + FIRST_DATA_ROW}
        for header, value in zip(headers, values):
            if header:
                row[header] = None if _is_blank(value) else value
        if any(v is not None for k, v in row.items() if k != ROW_INDEX_KEY):
            rows.append(row)

    logger.info(f"Loaded {len(rows)} rows with {len([h for h in headers if h])} columns from {file_path}")
    return PayrollFile(path=file_path, headers=[h for h in headers if h], rows=rows)


def _first(row: Dict[str, Any], *columns: str) -> Any:
    for column in columns:
        value = row.get(column)
        if not _is_blank(value):
            return value
    return None


def _text(value: Any) -> str:
    return "" if _is_blank(value) else str(value).strip()


def read_absence_file(file_path: Union[str, Path]) -> List[AbsenceRecord]:
    """
    Reads an absence/vacation request export into ``AbsenceRecord``s.

    Raises:
        DataReadError: If the file cannot be found or read.
    """
    payroll_like = read_payroll_file(file_path)
    records = []
    for row in payroll_like.rows:
        row_index = row[ROW_INDEX_KEY]
        try:
            days = parse_money(_first(row, "Dias", "Días"), row_index=row_index, column="Dias")
        except ParseError as e:
            logger.warning(f"Ignoring unparsable day count: {e}")
            days = None
        records.append(AbsenceRecord(
            name=_text(row.get("Nombre")),
            ci=normalize_ci(_first(row, "C.I.", "CI", "Ci")),
            company=_text(row.get("Empresa")),
            department=_text(_first(row, "Departamento", "Grupo")),
            job_title=_text(row.get("Cargo")),
            request_type=_text(_first(row, "Tipo Solicitud", "Tipo")),
            reason=_text(row.get("Motivo")),
            justification=_text(_first(row, "Justificación", "Justificacion")),
            # "Feha Inicio" is a misspelling found in real exports
            start_date=parse_date(_first(row, "Fecha Inicio", "Feha Inicio", "FechaInicio")),
            end_date=parse_date(_first(row, "Fecha Fin", "FechaFin")),
            days=float(days) if days is not None else 0.0,
        ))
    logger.info(f"Loaded {len(records)} absence records from {file_path}")
    return records
