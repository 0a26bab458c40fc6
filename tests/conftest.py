import os
import sys
from decimal import Decimal

import pytest

# Ensure project root is on sys.path before imports (logging_config lives there)
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from payroll_model.config.models import ColumnMapping, PayrollRules, SimulationParams  # noqa: E402
from payroll_model.engines.normalizer import Employee  # noqa: E402


# Define pytest markers for test categories
def pytest_configure(config):
    """
    Register custom markers to avoid pytest warnings.
    """
    config.addinivalue_line("markers", "integration: mark a test as an integration test")
    config.addinivalue_line("markers", "engines: mark a test as an engines test")
    config.addinivalue_line("markers", "analytics: mark a test as an analytics test")
    config.addinivalue_line("markers", "config: mark a test as a config test")


@pytest.fixture
def rules():
    return PayrollRules()


@pytest.fixture
def mapping():
    return ColumnMapping(
        identifier="CI",
        name="Nombre",
        job_title="Cargo",
        level="Nivel",
        area="Area",
        company="Empresa",
        gender="Genero",
        hire_date="Fecha Ingreso",
        exit_date="Fecha Retiro",
        basic_pay="Haber Basico",
        seniority_bonus="Bono Antiguedad",
        total_earned="Total Ganado",
        other_bonuses=["Bono Dominical"],
    )


@pytest.fixture
def params():
    """Minimum wage 3200, 5 % government + 3 % company, level A only."""
    return SimulationParams(
        new_minimum_wage=3200,
        government_pct=5,
        company_pct=3,
        eligible_levels=["A"],
    )


@pytest.fixture
def make_employee():
    counter = {"row": 1}

    def _make(basic_pay="3000", identifier=None, level="A", **kwargs):
        counter["row"] += 1
        row = kwargs.pop("row_index", counter["row"])
        if identifier is None:
            identifier = f"{1000000 + row}"
        other = {k: Decimal(str(v)) for k, v in kwargs.pop("other_bonuses", {}).items()}
        seniority = kwargs.pop("seniority_bonus", "0")
        return Employee(
            row_index=row,
            identifier=identifier,
            ci=kwargs.pop("ci", identifier),
            level=level,
            basic_pay=Decimal(str(basic_pay)) if basic_pay is not None else None,
            seniority_bonus=Decimal(str(seniority)),
            other_bonuses=other,
            **kwargs,
        )

    return _make


@pytest.fixture
def raw_rows():
    """Raw rows as read from a payroll file, one of them unparsable."""
    return [
        {"_rowIndex": 2, "CI": "6301349 SC", "Nombre": "Ana Quispe", "Cargo": "Analista", "Nivel": "A",
         "Area": "Finanzas", "Empresa": "Norte", "Genero": "F", "Fecha Ingreso": "15/03/2019",
         "Haber Basico": "Bs 3.000,00", "Bono Antiguedad": "150", "Bono Dominical": None,
         "Total Ganado": "3150"},
        {"_rowIndex": 3, "CI": "4455667", "Nombre": "Luis Mamani", "Cargo": "Operario", "Nivel": "B",
         "Area": "Planta", "Empresa": "Norte", "Genero": "M", "Fecha Ingreso": "01/02/2024",
         "Haber Basico": 2800, "Bono Antiguedad": None, "Bono Dominical": "200.50",
         "Total Ganado": 3000.50},
        {"_rowIndex": 4, "CI": "7788990", "Nombre": "Rosa Flores", "Cargo": "Operario", "Nivel": "B",
         "Area": "Planta", "Empresa": "Sur", "Genero": "F", "Fecha Ingreso": None,
         "Haber Basico": "n/a", "Bono Antiguedad": None, "Bono Dominical": None,
         "Total Ganado": None},
    ]
