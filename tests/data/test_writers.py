import pandas as pd

from payroll_model.data.writers import (
    SHEET_DETAIL,
    SHEET_LEVELS,
    SHEET_SUMMARY,
    SHEET_TOP,
    executive_summary_rows,
    increment_pdf_rows,
    write_frame_csv,
    write_increment_workbook,
    write_report_pdf,
)
from payroll_model.engines.increment import simulate_increment
from payroll_model.engines.payroll import calculate_all
from payroll_model.reporting.comparison import build_comparison


def _simulation(make_employee, params):
    employees = [
        make_employee("3000", level="A", name="Ana", job_title="Analista"),
        make_employee("2800", level="B", name="Luis", job_title="Operario"),
    ]
    simulated = simulate_increment(calculate_all(employees).employees, params).employees
    return build_comparison(simulated, params), simulated


def test_executive_summary_rows(make_employee, params):
    summary, _ = _simulation(make_employee, params)
    rows = executive_summary_rows(summary)
    labels = [r[0] for r in rows if r]
    assert labels[0] == "PARÁMETROS DE SIMULACIÓN"
    assert "COSTO TOTAL EMPRESA" in labels
    assert rows[-1][1] == float(summary.annual_impact)


def test_write_increment_workbook(tmp_path, make_employee, params):
    summary, simulated = _simulation(make_employee, params)
    path = write_increment_workbook(summary, simulated, tmp_path / "out" / "analisis.xlsx")
    assert pd.ExcelFile(path, engine="openpyxl").sheet_names == [
        SHEET_SUMMARY, SHEET_DETAIL, SHEET_TOP, SHEET_LEVELS,
    ]
    detail = pd.read_excel(path, sheet_name=SHEET_DETAIL, engine="openpyxl")
    assert detail["Nombre"].tolist() == ["Ana", "Luis"]
    assert detail["Recibe Incremento %"].tolist() == ["SÍ", "NO"]
    assert detail["Nivelado por SMN"].tolist() == ["NO", "SÍ"]


def test_write_frame_csv(tmp_path):
    path = write_frame_csv(pd.DataFrame({"a": [1.005, 2.0]}), tmp_path / "a.csv")
    assert path.read_text(encoding="utf-8").splitlines()[0] == "a"
    assert write_frame_csv(pd.DataFrame(), tmp_path / "empty.csv") is None
    assert not (tmp_path / "empty.csv").exists()


def test_write_report_pdf(tmp_path, make_employee, params):
    _, simulated = _simulation(make_employee, params)
    headers, rows = increment_pdf_rows(simulated)
    assert len(headers) == len(rows[0])
    path = write_report_pdf("Incremento", headers, rows * 20, tmp_path / "reporte.pdf", rows_per_page=15)
    assert path.read_bytes().startswith(b"%PDF")
    empty = write_report_pdf("Vacío", headers, [], tmp_path / "vacio.pdf")
    assert empty.stat().st_size > 0
