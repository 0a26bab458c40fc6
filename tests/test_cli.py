import pandas as pd
import pytest

from logging_config import reset_logging
from payroll_model.cli import build_simulation_params, main, parse_arguments
from payroll_model.config.models import MainConfig

PAYROLL = (
    "C.I.;Nombre;Cargo;Nivel;Área;Haber Básico;Bono Antigüedad;Total Ganado\n"
    "6301349 SC;Ana Quispe;Analista;A;Finanzas;3.000,00;150;3150\n"
    "4455667;Luis Mamani;Operario;B;Planta;2800;;2800\n"
)

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def clean_logging():
    yield
    reset_logging()


@pytest.fixture
def payroll_csv(tmp_path):
    path = tmp_path / "planilla.csv"
    path.write_text(PAYROLL, encoding="utf-8")
    return path


def _common(tmp_path, payroll_csv):
    return [
        "--payroll", str(payroll_csv),
        "--output-dir", str(tmp_path / "out"),
        "--log-dir", str(tmp_path / "logs"),
        "--reference-date", "2025-06-30",
    ]


def test_calculate_writes_outputs(tmp_path, payroll_csv, capsys):
    assert main(["calculate", *_common(tmp_path, payroll_csv)]) == 0
    costs = pd.read_csv(tmp_path / "out" / "payroll_costs.csv")
    assert len(costs) == 2
    assert (tmp_path / "out" / "costs_by_area.csv").exists()
    assert (tmp_path / "logs" / "combined.log").exists()
    assert "2 employees" in capsys.readouterr().out


def test_simulate_writes_workbook_and_pdf(tmp_path, payroll_csv, capsys):
    argv = ["simulate", *_common(tmp_path, payroll_csv),
            "--minimum-wage", "3200", "--government-pct", "5", "--company-pct", "3", "--levels", "A", "--pdf"]
    assert main(argv) == 0
    out = tmp_path / "out"
    assert (out / "increment_analysis.xlsx").exists()
    assert (out / "increment_analysis.pdf").exists()
    detail = pd.read_csv(out / "increment_detail.csv")
    assert len(detail) == 2
    assert "1 floored to minimum wage" in capsys.readouterr().out


def test_missing_payroll_returns_error(tmp_path):
    argv = ["calculate", "--payroll", str(tmp_path / "nope.csv"), "--log-dir", str(tmp_path / "logs"),
            "--output-dir", str(tmp_path / "out")]
    assert main(argv) == 1


def test_incomplete_mapping_returns_error(tmp_path, payroll_csv):
    mapping = tmp_path / "mapping.yaml"
    mapping.write_text("name: Nombre\n", encoding="utf-8")
    assert main(["calculate", *_common(tmp_path, payroll_csv), "--mapping", str(mapping)]) == 1


def test_simulate_requires_minimum_wage(tmp_path, payroll_csv):
    assert main(["simulate", *_common(tmp_path, payroll_csv)]) == 1


def test_build_simulation_params_overrides():
    args = parse_arguments(["simulate", "--payroll", "x.csv", "--minimum-wage", "3300", "--levels", "A", "B"])
    params = build_simulation_params(args, MainConfig())
    assert str(params.new_minimum_wage) == "3300.00"
    assert params.eligible_levels == frozenset({"A", "B"})
    assert params.employer_charge_rate == MainConfig().rules.employer_charge_rate


def test_analyze_with_absences(tmp_path, payroll_csv, capsys):
    absences = tmp_path / "ausencias.csv"
    absences.write_text(
        "Nombre;C.I.;Tipo Solicitud;Dias\n"
        "Luis Mamani;4455667;Permiso;2\n"
        "Ana Quispe;6301349;Vacación;5\n",
        encoding="utf-8",
    )
    assert main(["analyze", *_common(tmp_path, payroll_csv), "--absences", str(absences)]) == 0
    out = tmp_path / "out"
    assert (out / "equity_by_role.csv").exists()
    bradford = pd.read_csv(out / "bradford.csv", dtype={"ci": str})
    assert bradford["ci"].tolist()[0] == "4455667"
    assert "absence days 2" in capsys.readouterr().out
