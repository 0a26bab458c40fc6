# payroll_model/data/writers.py
"""
Functions for writing analysis outputs (Excel workbooks, PDF tables, CSV).

Writers only format: every figure comes from the comparison and result frames.
"""

import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

import pandas as pd

# To prevent GUI errors on headless servers
import matplotlib
matplotlib.use('Agg')  # Use a non-interactive backend
import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages

from payroll_model.reporting.comparison import (
    ComparisonSummary,
    detail_frame,
    level_frame,
    top_impacts_frame,
)
from payroll_model.schema.columns import ResultColumns as RC

logger = logging.getLogger(__name__)


# Define a custom exception for data writing errors
class DataWriteError(Exception):
    """Custom exception for errors during data writing."""

    pass


SHEET_SUMMARY = "Resumen Ejecutivo"
SHEET_DETAIL = "Detalle Personal"
SHEET_TOP = "Top 20 Impactos"
SHEET_LEVELS = "Análisis por Nivel"

COMPONENT_LABELS = {
    "basic_pay": "Haber Básico",
    "seniority_bonus": "Bono Antigüedad",
    "total_earned": "Masa Salarial",
    "employer_charges": "Cargas Patronales",
    "provisions": "Provisiones",
    "total_cost": "COSTO TOTAL EMPRESA",
}

DETAIL_HEADERS = {
    RC.CI.value: "CI",
    RC.NAME.value: "Nombre",
    RC.JOB_TITLE.value: "Cargo",
    RC.LEVEL.value: "Nivel",
    RC.AREA.value: "Área",
    RC.REGIONAL.value: "Regional",
    RC.BASIC_PAY.value: "Haber Básico ACTUAL",
    RC.NEW_BASIC_PAY.value: "Haber Básico NUEVO",
    RC.DELTA_BASIC_PAY.value: "Δ Haber Básico",
    RC.PCT_BASIC_PAY.value: "% Var Haber",
    RC.SENIORITY_BONUS.value: "Bono Antigüedad ACTUAL",
    RC.NEW_SENIORITY_BONUS.value: "Bono Antigüedad NUEVO",
    RC.DELTA_SENIORITY_BONUS.value: "Δ Antigüedad",
    RC.OTHER_BONUSES.value: "Otros Bonos (FIJOS)",
    RC.TOTAL_EARNED.value: "Total Ganado ACTUAL",
    RC.NEW_TOTAL_EARNED.value: "Total Ganado NUEVO",
    RC.DELTA_TOTAL_EARNED.value: "Δ Total Ganado",
    RC.PCT_TOTAL_EARNED.value: "% Var Ganado",
    RC.TOTAL_COST.value: "Costo Total ACTUAL",
    RC.NEW_TOTAL_COST.value: "Costo Total NUEVO",
    RC.DELTA_TOTAL_COST.value: "Δ Costo Total",
    RC.PCT_TOTAL_COST.value: "% Var Costo",
    RC.RECEIVES_PERCENTAGE_INCREASE.value: "Recibe Incremento %",
    RC.FLOORED_TO_MINIMUM_WAGE.value: "Nivelado por SMN",
}

TOP_HEADERS = {
    "ranking": "Ranking",
    RC.NAME.value: "Nombre",
    RC.JOB_TITLE.value: "Cargo",
    RC.LEVEL.value: "Nivel",
    RC.TOTAL_COST.value: "Costo Actual",
    RC.NEW_TOTAL_COST.value: "Costo Nuevo",
    RC.DELTA_TOTAL_COST.value: "Impacto (BOB)",
    RC.PCT_TOTAL_COST.value: "% Incremento",
    RC.IMPACT_REASON.value: "Motivo",
}

LEVEL_HEADERS = {
    RC.LEVEL.value: "Nivel",
    "employees": "Empleados",
    "with_increase": "Con Incremento %",
    "floored": "Nivelados SMN",
    "current_cost": "Costo Actual",
    "new_cost": "Costo Nuevo",
    "delta": "Delta",
    "pct_impact": "% Impacto",
}


def _yes_no(flag: bool) -> str:
    return "SÍ" if flag else "NO"


def executive_summary_rows(summary: ComparisonSummary) -> List[List[Any]]:
    """Rows of the executive summary sheet, in display order."""
    p = summary.params
    rows: List[List[Any]] = [
        ["PARÁMETROS DE SIMULACIÓN"],
        ["Nuevo SMN", float(p.new_minimum_wage)],
        ["% Incremento Gobierno", float(p.government_pct)],
        ["% Incremento Empresa", float(p.company_pct)],
        ["% Incremento Total", float(p.total_pct)],
        ["Niveles con Incremento", ", ".join(summary.levels_applied)],
        [],
        ["RESUMEN GLOBAL"],
        ["Total Empleados", summary.employee_count],
        ["Empleados con Incremento Porcentual", summary.percentage_count],
        ["Empleados Nivelados por SMN", summary.floored_count],
        [],
        ["COMPARATIVO DE COSTOS", "ACTUAL", "PROYECTADO", "DELTA", "% VARIACIÓN"],
    ]
    for key, totals in summary.components.items():
        rows.append([
            COMPONENT_LABELS.get(key, key),
            float(totals.current),
            float(totals.projected),
            float(totals.delta),
            float(totals.pct_variation),
        ])
    rows += [
        [],
        ["IMPACTO ECONÓMICO MENSUAL", float(summary.impact_total)],
        [f"IMPACTO ECONÓMICO ANUAL (x{summary.annual_payments})", float(summary.annual_impact)],
    ]
    return rows


def write_increment_workbook(
    summary: ComparisonSummary,
    simulated: Sequence,
    output_path: Union[str, Path],
    title: str = "ANÁLISIS DE IMPACTO - INCREMENTO SALARIAL",
) -> Path:
    """
    Writes the four-sheet increment analysis workbook.

    Args:
        summary: Comparison of the simulation run.
        simulated: Simulated employees in input order (detail sheet).
        output_path: Destination .xlsx path.

    Raises:
        DataWriteError: If writing fails.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info(f"Writing increment workbook to {output_path}...")

    summary_df = pd.DataFrame([[title], []] + executive_summary_rows(summary))

    detail = detail_frame(simulated)
    if not detail.empty:
        for col in (RC.RECEIVES_PERCENTAGE_INCREASE.value, RC.FLOORED_TO_MINIMUM_WAGE.value):
            detail[col] = detail[col].map(_yes_no)
        detail = detail[list(DETAIL_HEADERS)].rename(columns=DETAIL_HEADERS)

    top = top_impacts_frame(summary)
    if not top.empty:
        top = top[list(TOP_HEADERS)].rename(columns=TOP_HEADERS)

    levels = level_frame(summary)
    if not levels.empty:
        levels = levels.rename(columns=LEVEL_HEADERS)

    try:
        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            summary_df.to_excel(writer, sheet_name=SHEET_SUMMARY, index=False, header=False)
            detail.to_excel(writer, sheet_name=SHEET_DETAIL, index=False)
            top.to_excel(writer, sheet_name=SHEET_TOP, index=False)
            levels.to_excel(writer, sheet_name=SHEET_LEVELS, index=False)
    except (OSError, ValueError) as e:
        logger.exception(f"Failed to write increment workbook {output_path}")
        raise DataWriteError(f"Failed to write increment workbook {output_path}") from e

    logger.info(f"Wrote increment workbook: {output_path} ({len(detail)} employees)")
    return output_path


def write_frame_csv(df: pd.DataFrame, output_path: Union[str, Path]) -> Optional[Path]:
    """Writes a result frame to CSV with 2-decimal floats."""
    if df is None or df.empty:
        logger.warning(f"No data provided to write to {output_path}.")
        return None
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        df.to_csv(output_path, index=False, float_format="%.2f")
    except OSError as e:
        logger.exception(f"Failed to write {output_path}")
        raise DataWriteError(f"Failed to write {output_path}") from e
    logger.info(f"Wrote {len(df)} rows to {output_path}")
    return output_path


def write_report_pdf(
    title: str,
    headers: Sequence[str],
    rows: Sequence[Sequence[Any]],
    output_path: Union[str, Path],
    rows_per_page: int = 30,
) -> Path:
    """
    Writes a paginated table report to PDF.

    Raises:
        DataWriteError: If writing fails.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info(f"Writing PDF report '{title}' to {output_path}...")

    pages = [rows[i:i + rows_per_page] for i in range(0, len(rows), rows_per_page)] or [[]]
    try:
        with PdfPages(output_path) as pdf:
            for page_number, page_rows in enumerate(pages, start=1):
                fig, ax = plt.subplots(figsize=(11.69, 8.27))  # A4 landscape
                ax.axis("off")
                ax.set_title(f"{title} ({page_number}/{len(pages)})", fontsize=12, loc="left")
                if page_rows:
                    table = ax.table(
                        cellText=[[str(v) for v in r] for r in page_rows],
                        colLabels=list(headers),
                        loc="upper center",
                        cellLoc="left",
                    )
                    table.auto_set_font_size(False)
                    table.set_fontsize(7)
                    table.scale(1, 1.2)
                else:
                    ax.text(0.5, 0.5, "Sin datos", ha="center", va="center")
                pdf.savefig(fig)
                plt.close(fig)  # Close the figure to free memory
    except (OSError, ValueError) as e:
        logger.exception(f"Failed to write PDF report {output_path}")
        raise DataWriteError(f"Failed to write PDF report {output_path}") from e

    logger.info(f"Wrote PDF report: {output_path} ({len(rows)} rows, {len(pages)} pages)")
    return output_path


def increment_pdf_rows(simulated: Sequence) -> Tuple[List[str], List[List[str]]]:
    """Headers and formatted rows of the increment PDF report."""
    headers = ["Nombre", "Cargo", "Nivel", "Ganado Actual", "Ganado Nuevo", "Δ Total", "% Var", "Impacto"]
    rows = []
    for s in simulated:
        rows.append([
            s.employee.name,
            s.employee.job_title,
            s.level,
            f"Bs {s.current.total_earned:,.2f}",
            f"Bs {s.new_total_earned:,.2f}",
            f"Bs {s.delta_total_earned:,.2f}",
            f"{s.pct_variation_total_earned:.1f}%",
            f"Bs {s.delta_total_cost:,.2f}",
        ])
    return headers, rows
