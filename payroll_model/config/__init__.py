"""
Configuration layer: YAML files validated into pydantic models.

Example Usage:
    >>> from payroll_model.config import load_config
    >>> cfg = load_config("configs/default.yaml")
    >>> cfg.rules.employer_charge_rate
    Decimal('0.1721')
"""

from .loaders import ConfigLoadError, load_column_mapping, load_config, load_simulation_params, parse_config
from .models import (
    ColumnMapping,
    DuplicatePolicy,
    MainConfig,
    PayrollRules,
    SeniorityBonusRule,
    SeniorityTier,
    SimulationParams,
    ValidationPolicy,
)

__all__ = [
    'load_config',
    'parse_config',
    'load_column_mapping',
    'load_simulation_params',
    'ConfigLoadError',
    'ColumnMapping',
    'DuplicatePolicy',
    'MainConfig',
    'PayrollRules',
    'SeniorityBonusRule',
    'SeniorityTier',
    'SimulationParams',
    'ValidationPolicy',
]
