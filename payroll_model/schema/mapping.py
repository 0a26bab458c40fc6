"""
Header auto-detection for uploaded payroll spreadsheets.

Maps raw Spanish-language payroll headers ("Haber Básico", "Bono Antigüedad",
"Total Ganado", ...) onto canonical ``EmployeeFields``. A repeated header
("Haber Básico" and "Haber Básico (2)") fills the alternate column of the
field, read when the primary cell is blank.
"""

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from payroll_model.config.models import ColumnMapping

logger = logging.getLogger(__name__)

_SUFFIX_RE = re.compile(r"\s*\(\d+\)\s*$")


def normalize_header(header) -> str:
    """Collapse whitespace in a raw header; ``None`` becomes ''."""
    return re.sub(r"\s+", " ", str(header if header is not None else "")).strip()


def strip_header_suffix(header: str) -> str:
    """Drop the de-duplication suffix added by the readers ("Bono (2)" -> "Bono")."""
    return _SUFFIX_RE.sub("", normalize_header(header))


def _fold(text: str) -> str:
    """Lowercase and remove accents so 'Básico' matches 'basico'."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _has_all(*words: str) -> Callable[[str], bool]:
    return lambda h: all(w in h for w in words)


def _has_any(*words: str) -> Callable[[str], bool]:
    return lambda h: any(w in h for w in words)


def _equals(*values: str) -> Callable[[str], bool]:
    return lambda h: h in values


def _any_of(*rules: Callable[[str], bool]) -> Callable[[str], bool]:
    return lambda h: any(rule(h) for rule in rules)


@dataclass
class DetectionResult:
    """Outcome of header auto-detection."""

    mapping: ColumnMapping
    matched: Dict[str, str] = field(default_factory=dict)  # raw header -> canonical field
    unmatched: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class PayrollColumnDetector:
    """Keyword rules mapping folded headers to canonical fields.

    Rules are evaluated in order and the first match wins. The identifier
    rule matches the bare substring 'ci' and therefore runs last.
    """

    # (canonical field, rule, has alternate column)
    RULES: List[Tuple[str, Callable[[str], bool], bool]] = [
        ("basic_pay", _any_of(_has_all("haber", "basico"), _equals("hb")), True),
        ("seniority_bonus", _any_of(_has_any("antiguedad"), _equals("ba")), True),
        ("total_earned", _any_of(_has_all("total", "ganado"), _equals("tg")), True),
        ("sunday_bonus", _has_any("dominical"), False),
        ("exit_date", _any_of(_has_all("fecha", "salida"), _has_any("retiro")), False),
        ("hire_date", _any_of(_has_all("fecha", "ingreso"), _has_any("incorporacion")), False),
        ("name", _has_any("nombre", "empleado", "trabajador"), False),
        ("job_title", _has_any("cargo", "puesto"), False),
        ("company", _has_any("empresa"), False),
        ("area", _has_any("area", "departamento"), False),
        ("level", _has_any("nivel"), False),
        ("regional", _has_any("regional", "sucursal"), False),
        ("gender", _any_of(_has_any("genero", "sexo"), _equals("g")), False),
        ("identifier", _has_any("ci", "carnet", "identificador", "codigo"), False),
    ]

    @classmethod
    def classify(cls, header: str) -> Optional[Tuple[str, bool]]:
        folded = _fold(strip_header_suffix(header))
        if not folded:
            return None
        for field_name, rule, has_alt in cls.RULES:
            if rule(folded):
                return field_name, has_alt
        return None

    @classmethod
    def detect(cls, headers: Sequence[str]) -> DetectionResult:
        values: Dict[str, object] = {"other_bonuses": []}
        matched: Dict[str, str] = {}
        unmatched: List[str] = []
        warnings: List[str] = []

        for header in headers:
            if not normalize_header(header):
                continue
            hit = cls.classify(header)
            if hit is None:
                unmatched.append(header)
                continue
            field_name, has_alt = hit

            if field_name == "sunday_bonus":
                # Sunday bonus is a fixed bonus; only the first such column counts
                if not values["other_bonuses"]:
                    values["other_bonuses"].append(header)
                    matched[header] = "other_bonuses"
                else:
                    warnings.append(f"Ignoring repeated Sunday bonus column '{header}'")
                continue

            if field_name not in values:
                values[field_name] = header
                matched[header] = field_name
            elif has_alt and f"{field_name}_alt" not in values:
                values[f"{field_name}_alt"] = header
                matched[header] = f"{field_name}_alt"
            elif has_alt:
                warnings.append(f"Ignoring third column '{header}' for {field_name}")
            else:
                # Later headers overwrite earlier text matches
                values[field_name] = header
                matched[header] = field_name

        # Exact header names take priority over keyword matches
        for header in headers:
            key = normalize_header(header).lower()
            if key in ("ci", "c.i."):
                values["identifier"] = header
            elif key == "nombre":
                values["name"] = header
            elif "ocup" in key and "desem" in key:
                values["job_title"] = header

        mapping = ColumnMapping(**values)
        for missing in mapping.missing_required():
            warnings.append(f"No column detected for required field '{missing}'")
        return DetectionResult(mapping=mapping, matched=matched, unmatched=unmatched, warnings=warnings)


def detect_columns(headers: Sequence[str]) -> ColumnMapping:
    """Guess a ``ColumnMapping`` from raw spreadsheet headers.

    Args:
        headers: Raw headers in file order, as returned by the readers.

    Returns:
        ColumnMapping with every field that could be detected; fields with
        no matching header are left as ``None``.
    """
    result = PayrollColumnDetector.detect(headers)
    logger.info(
        f"[MAPPING] Detected {len(result.matched)} of {len(headers)} columns; "
        f"unmatched: {result.unmatched}"
    )
    for warning in result.warnings:
        logger.warning(f"[MAPPING] {warning}")
    return result.mapping
