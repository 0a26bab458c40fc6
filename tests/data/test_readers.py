from datetime import date

import pandas as pd
import pytest

from payroll_model.data.readers import DataReadError, make_unique_headers, read_absence_file, read_payroll_file


def test_make_unique_headers():
    assert make_unique_headers(["Bono", " Bono ", None, "Haber  Básico", "Bono"]) == [
        "Bono", "Bono (2)", "", "Haber Básico", "Bono (3)",
    ]


def test_read_semicolon_csv(tmp_path):
    path = tmp_path / "planilla.csv"
    path.write_text(
        "C.I.;Nombre;Haber Básico;Haber Básico\n"
        "6301349 SC;Ana Quispe;3.000,00;\n"
        ";;;\n"
        "4455667;Luis Mamani;;2800\n",
        encoding="utf-8",
    )
    payroll = read_payroll_file(path)
    assert payroll.headers == ["C.I.", "Nombre", "Haber Básico", "Haber Básico (2)"]
    assert [r["_rowIndex"] for r in payroll.rows] == [2, 4]
    assert payroll.rows[0]["Haber Básico"] == "3.000,00"
    assert payroll.rows[0]["Haber Básico (2)"] is None
    assert payroll.rows[1]["Haber Básico (2)"] == "2800"


def test_read_comma_csv_with_blank_header(tmp_path):
    path = tmp_path / "planilla.csv"
    path.write_text("CI,Nombre,,Total Ganado\n111,Ana,x,3150\n", encoding="utf-8")
    payroll = read_payroll_file(path)
    assert payroll.headers == ["CI", "Nombre", "Total Ganado"]
    assert payroll.rows == [{"_rowIndex": 2, "CI": "111", "Nombre": "Ana", "Total Ganado": "3150"}]


def test_read_latin1_csv(tmp_path):
    path = tmp_path / "planilla.csv"
    path.write_bytes("CI;Área\n111;Producción\n".encode("latin-1"))
    assert read_payroll_file(path).rows[0]["Área"] == "Producción"


def test_read_excel_first_sheet(tmp_path):
    path = tmp_path / "planilla.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame({"CI": ["111", "222"], "Haber Básico": [3000, 2800.5]}).to_excel(
            writer, sheet_name="Planilla", index=False
        )
        pd.DataFrame({"x": [1]}).to_excel(writer, sheet_name="Otra", index=False)
    payroll = read_payroll_file(path)
    assert payroll.headers == ["CI", "Haber Básico"]
    assert len(payroll.rows) == 2
    assert payroll.rows[1]["Haber Básico"] == 2800.5


def test_missing_or_unsupported_file(tmp_path):
    with pytest.raises(DataReadError, match="not found"):
        read_payroll_file(tmp_path / "nope.csv")
    other = tmp_path / "planilla.json"
    other.write_text("{}", encoding="utf-8")
    with pytest.raises(DataReadError, match="Unsupported"):
        read_payroll_file(other)


def test_read_absence_file(tmp_path):
    path = tmp_path / "ausencias.csv"
    path.write_text(
        "Nombre;C.I.;Tipo Solicitud;Feha Inicio;Fecha Fin;Dias\n"
        "Ana Quispe;6301349 SC;Vacación;01/03/2025;05/03/2025;5\n"
        "Luis Mamani;4455667;Permiso;10/03/2025;10/03/2025;medio\n",
        encoding="utf-8",
    )
    records = read_absence_file(path)
    assert [r.ci for r in records] == ["6301349", "4455667"]
    assert records[0].is_vacation
    assert records[0].start_date == date(2025, 3, 1)
    assert records[0].end_date == date(2025, 3, 5)
    assert records[0].days == 5.0
    # Unparsable day counts are read as zero
    assert records[1].days == 0.0
