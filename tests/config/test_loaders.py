from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from payroll_model.config.loaders import (
    ConfigLoadError,
    load_column_mapping,
    load_config,
    load_simulation_params,
    load_yaml_config,
    parse_config,
)
from payroll_model.config.models import DuplicatePolicy

DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "configs" / "default.yaml"

pytestmark = pytest.mark.config


def _write(tmp_path, text, name="config.yaml"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_default_config_loads():
    config = load_config(DEFAULT_CONFIG)
    assert config.rules.version == "BO-2025"
    assert config.rules.employer_charge_rate == Decimal("0.1721")
    assert config.rules.employer_charge_components["gestora"] == Decimal("0.0721")
    assert config.rules.annual_payments == 13
    assert config.rules.provisions.enabled() == ["aguinaldo", "indemnizacion"]
    assert config.validation.duplicate_policy is DuplicatePolicy.FLAG
    assert config.columns is None
    assert config.simulation.new_minimum_wage == Decimal("3300")
    assert config.simulation.is_level_eligible("Z")


def test_empty_file_gives_defaults(tmp_path):
    config = load_config(_write(tmp_path, ""))
    assert config.rules.employer_charge_rate == Decimal("0.1721")
    assert config.simulation is None


def test_reference_date_is_parsed(tmp_path):
    config = load_config(_write(tmp_path, "rules:\n  reference_date: 2025-06-30\n"))
    assert config.rules.reference_date == date(2025, 6, 30)


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigLoadError, match="not found"):
        load_yaml_config(tmp_path / "nope.yaml")


def test_invalid_yaml_raises(tmp_path):
    with pytest.raises(ConfigLoadError, match="parsing"):
        load_yaml_config(_write(tmp_path, "rules: [unclosed\n"))


def test_non_mapping_yaml_raises(tmp_path):
    with pytest.raises(ConfigLoadError, match="Expected a dictionary"):
        load_yaml_config(_write(tmp_path, "- a\n- b\n"))


def test_schema_violation_raises():
    with pytest.raises(ConfigLoadError):
        parse_config({"validation": {"duplicate_policy": "merge"}})
    with pytest.raises(ConfigLoadError):
        parse_config({"rules": {"employer_charge_rate": 2}})


def test_model_violation_raises():
    # Passes the schema but the components do not add up to the rate
    bad = {"rules": {"employer_charge_rate": 0.17, "employer_charge_components": {"gestora": 0.0721}}}
    with pytest.raises(ConfigLoadError, match="components"):
        parse_config(bad)


def test_load_column_mapping_bare_or_nested(tmp_path):
    bare = _write(tmp_path, "identifier: C.I.\nbasic_pay: Haber Basico\nother_bonuses: [Bono Dominical]\n", "bare.yaml")
    nested = _write(tmp_path, "columns:\n  identifier: C.I.\n  basic_pay: Haber Basico\n", "nested.yaml")
    assert load_column_mapping(bare).other_bonuses == ["Bono Dominical"]
    mapping = load_column_mapping(nested)
    assert mapping.identifier == "C.I."
    assert mapping.missing_required() == []


def test_load_simulation_params(tmp_path):
    params = load_simulation_params(DEFAULT_CONFIG)
    assert params.total_pct == Decimal("5")
    with pytest.raises(ConfigLoadError, match="simulation"):
        load_simulation_params(_write(tmp_path, "rules: {}\n"))
