import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from cerberus import Validator
from pydantic import ValidationError

from payroll_model.config.models import ColumnMapping, MainConfig, SimulationParams

# Configure logger for this module
logger = logging.getLogger(__name__)


class ConfigLoadError(Exception):
    """Custom exception for errors during config loading."""

    pass


# Top-level shape of a configuration file. Field-level rules live in the
# pydantic models; this only catches misspelled sections and wrong types early.
CONFIG_SCHEMA: Dict[str, Any] = {
    "rules": {
        "type": "dict",
        "required": False,
        "schema": {
            "version": {"type": "string"},
            "employer_charge_rate": {"type": "number", "min": 0, "max": 1},
            "employer_charge_components": {"type": "dict", "valuesrules": {"type": "number"}},
            "provision_rate": {"type": "number", "min": 0, "max": 1},
            "provisions": {"type": "dict", "valuesrules": {"type": "boolean"}},
            "seniority_bonus": {"type": "dict"},
            "additional_costs": {"type": "dict"},
            "months_per_year": {"type": "integer", "min": 1},
            "annual_payments": {"type": "integer", "min": 1},
            "reference_date": {"type": ["date", "string"], "nullable": True},
        },
    },
    "validation": {
        "type": "dict",
        "required": False,
        "schema": {
            "duplicate_policy": {"type": "string", "allowed": ["flag", "keep_first", "reject"]},
            "allowed_levels": {"type": "list", "schema": {"type": "string"}},
            "total_tolerance": {"type": "number", "min": 0},
            "check_reported_total": {"type": "boolean"},
        },
    },
    "columns": {"type": "dict", "required": False, "nullable": True},
    "simulation": {
        "type": "dict",
        "required": False,
        "nullable": True,
        "schema": {
            "new_minimum_wage": {"type": "number", "required": True, "min": 0},
            "government_pct": {"type": "number", "min": 0},
            "company_pct": {"type": "number", "min": 0},
            "eligible_levels": {"type": "list", "schema": {"type": "string"}},
            "employer_charge_rate": {"type": "number", "min": 0, "max": 1},
        },
    },
}


def load_yaml_config(config_path: Union[str, Path]) -> Optional[Dict[str, Any]]:
    """
    Reads a YAML file into a plain dict. An empty file gives ``{}``.

    Raises:
        ConfigLoadError: If the file is missing, unreadable, not valid YAML,
            or its top level is not a mapping.
    """
    if not isinstance(config_path, Path):
        config_path = Path(config_path)

    logger.info(f"Reading YAML from {config_path}")

    if not config_path.is_file():
        logger.error(f"YAML file not found: {config_path}")
        raise ConfigLoadError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigLoadError(f"Configuration file not found: {config_path}") from e
    except yaml.YAMLError as e:
        logger.error(f"Invalid YAML in {config_path}: {e}")
        raise ConfigLoadError(f"Error parsing YAML file {config_path}: {e}") from e
    except OSError as e:
        logger.exception(f"Could not read {config_path}")
        raise ConfigLoadError(f"Could not read config {config_path}: {e}") from e

    if config_data is None:
        # An empty file means "all defaults"
        config_data = {}
    if not isinstance(config_data, dict):
        logger.error(f"Top level of {config_path} is {type(config_data).__name__}, not a mapping")
        raise ConfigLoadError(f"Invalid configuration format in {config_path}: Expected a dictionary.")

    logger.debug(f"Read {len(config_data)} top-level keys from {config_path}")
    return config_data


def parse_config(config_data: Dict[str, Any], source: str = "<dict>") -> MainConfig:
    """Validates a raw configuration mapping into a ``MainConfig``."""
    v = Validator(CONFIG_SCHEMA)
    if not v.validate(config_data):
        logger.error(f"Config schema validation failed for {source}: {v.errors}")
        raise ConfigLoadError(f"Config validation failed: {v.errors}")

    try:
        config = MainConfig.model_validate(config_data)
    except ValidationError as e:
        logger.error(f"Config model validation failed for {source}: {e}")
        raise ConfigLoadError(f"Config validation failed for {source}: {e}") from e

    logger.debug(
        f"Configuration loaded: rules version {config.rules.version}, "
        f"duplicate policy {config.validation.duplicate_policy.value}"
    )
    return config


def load_config(config_path: Union[str, Path]) -> MainConfig:
    """
    Loads YAML, checks its top-level schema and validates it into pydantic models.
    Raises ConfigLoadError on any failure.
    """
    config_data = load_yaml_config(config_path)
    return parse_config(config_data, source=str(config_path))


def load_column_mapping(mapping_path: Union[str, Path]) -> ColumnMapping:
    """Loads a standalone column mapping file (raw header per canonical field)."""
    data = load_yaml_config(mapping_path)
    # Accept either a bare mapping or one nested under "columns"
    if "columns" in data and isinstance(data["columns"], dict):
        data = data["columns"]
    try:
        return ColumnMapping.model_validate(data)
    except ValidationError as e:
        raise ConfigLoadError(f"Invalid column mapping in {mapping_path}: {e}") from e


def load_simulation_params(params_path: Union[str, Path]) -> SimulationParams:
    """Loads the ``simulation`` section of a config file into ``SimulationParams``."""
    config = load_config(params_path)
    if config.simulation is None:
        raise ConfigLoadError(f"No 'simulation' section in {params_path}")
    return config.simulation


__all__ = [
    "load_yaml_config",
    "parse_config",
    "load_config",
    "load_column_mapping",
    "load_simulation_params",
    "ConfigLoadError",
]
