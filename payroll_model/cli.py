# payroll_model/cli.py
# Command-line interface entry point (argparse)
import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

import pandas as pd

from payroll_model import __version__
from payroll_model.config.loaders import ConfigLoadError, load_column_mapping, load_config
from payroll_model.config.models import ColumnMapping, MainConfig, SimulationParams
from payroll_model.data.readers import DataReadError, PayrollFile, read_absence_file, read_payroll_file
from payroll_model.data.writers import (
    DataWriteError,
    increment_pdf_rows,
    write_frame_csv,
    write_increment_workbook,
    write_report_pdf,
)
from payroll_model.engines.payroll import PayrollResults
from payroll_model.reporting.comparison import detail_frame, summary_frame
from payroll_model.schema.mapping import detect_columns
from payroll_model.session import PayrollSession

# Import logging configuration
from logging_config import setup_logging, CALCULATION_LOGGER, ERROR_LOGGER, PERFORMANCE_LOGGER

# Get logger for this module
logger = logging.getLogger(__name__)

# Directory for log files
LOG_DIR = Path("output_dev/logs")
OUTPUT_DIR = Path("output_dev/results")


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--payroll",
        type=str,
        required=True,
        help="Path to the payroll CSV or Excel file."
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to the YAML configuration file. Defaults are used when omitted."
    )
    parser.add_argument(
        "--mapping",
        type=str,
        default=None,
        help="Path to a YAML column mapping. Overrides the config; auto-detected when neither is given."
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=str(OUTPUT_DIR),
        help=f"Directory to save output files (default: {OUTPUT_DIR})"
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        default=str(LOG_DIR),
        help=f"Directory to store log files (default: {LOG_DIR})"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--ids",
        nargs="+",
        default=None,
        help="Restrict the calculation to these identifiers or CIs."
    )
    parser.add_argument(
        "--reference-date",
        type=date.fromisoformat,
        default=None,
        help="Date seniority is measured at (YYYY-MM-DD). Defaults to the config, then today."
    )


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Payroll cost calculation and minimum-wage increment simulation.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    calculate = subparsers.add_parser("calculate", help="Calculate the monthly and annual cost of a payroll.")
    _add_common_arguments(calculate)

    simulate = subparsers.add_parser("simulate", help="Simulate a minimum-wage and percentage increment.")
    _add_common_arguments(simulate)
    simulate.add_argument("--minimum-wage", type=str, default=None, help="New national minimum wage.")
    simulate.add_argument("--government-pct", type=str, default=None, help="Government-decreed increment %%.")
    simulate.add_argument("--company-pct", type=str, default=None, help="Additional company increment %%.")
    simulate.add_argument(
        "--levels",
        nargs="+",
        default=None,
        help="Levels receiving the percentage increment ('Todos' for every level)."
    )
    simulate.add_argument("--top-n", type=int, default=20, help="Size of the impact ranking (default: 20).")
    simulate.add_argument("--pdf", action="store_true", help="Also write the PDF report.")

    analyze = subparsers.add_parser("analyze", help="Seniority, pay equity and absence analytics of a payroll.")
    _add_common_arguments(analyze)
    analyze.add_argument("--absences", type=str, default=None, help="Path to an absence/vacation export.")

    return parser.parse_args(argv)


def initialize_logging(debug: bool = False, log_dir: Path = LOG_DIR) -> None:
    """Initialize the logging configuration."""
    setup_logging(log_dir=log_dir, debug=debug)
    logger.info(f"Starting payroll_model {__version__}")
    logger.info(f"Command line arguments: {sys.argv}")
    logger.info(f"Pandas version: {pd.__version__}")
    if debug:
        logger.debug("Debug logging enabled")


def resolve_mapping(args: argparse.Namespace, config: MainConfig, payroll_file: PayrollFile) -> ColumnMapping:
    """Column mapping from --mapping, then the config, then header auto-detection."""
    if args.mapping:
        logger.info(f"Loading column mapping from: {args.mapping}")
        return load_column_mapping(args.mapping)
    if config.columns is not None:
        return config.columns
    logger.info("No column mapping configured; detecting columns from headers")
    return detect_columns(payroll_file.headers)


def build_simulation_params(args: argparse.Namespace, config: MainConfig) -> SimulationParams:
    """Simulation parameters from the config with command-line overrides applied."""
    data = config.simulation.model_dump() if config.simulation else {}
    overrides = {
        "new_minimum_wage": args.minimum_wage,
        "government_pct": args.government_pct,
        "company_pct": args.company_pct,
        "eligible_levels": args.levels,
    }
    data.update({k: v for k, v in overrides.items() if v is not None})
    if "new_minimum_wage" not in data:
        raise ValueError("A new minimum wage is required (--minimum-wage or simulation.new_minimum_wage)")
    data.setdefault("employer_charge_rate", config.rules.employer_charge_rate)
    return SimulationParams(**data)


def _group_frame(groups: dict, label: str) -> pd.DataFrame:
    rows = []
    for name, g in groups.items():
        rows.append({
            label: name,
            "employees": g.count,
            "total_earned": float(g.total_earned),
            "monthly_cost": float(g.monthly_cost),
            "annual_cost": float(g.annual_cost),
            "average_annual_cost": float(g.average_annual_cost),
            "share_pct": float(g.share_pct),
        })
    return pd.DataFrame(rows)


def load_session(args: argparse.Namespace) -> PayrollSession:
    """Reads, normalizes, validates and calculates the payroll given on the command line."""
    config = load_config(args.config) if args.config else MainConfig()
    payroll_file = read_payroll_file(args.payroll)
    mapping = resolve_mapping(args, config, payroll_file)

    missing = mapping.missing_required()
    if missing:
        raise ValueError(f"Column mapping is missing required fields: {missing}")

    session = PayrollSession(config=config)
    report = session.load_rows(payroll_file.rows, mapping)
    summary = report.get_summary()
    logger.info(
        f"Validation: {summary['valid']} valid, {summary['invalid']} invalid, "
        f"{summary['warning_count']} warnings of {summary['total']} rows"
    )
    session.calculate(selected_ids=args.ids, reference_date=args.reference_date)
    return session


def write_calculation_outputs(results: PayrollResults, session: PayrollSession, output_path: Path) -> None:
    write_frame_csv(results.to_frame(), output_path / "payroll_costs.csv")
    write_frame_csv(_group_frame(results.by_area, "area"), output_path / "costs_by_area.csv")
    write_frame_csv(_group_frame(results.by_company, "company"), output_path / "costs_by_company.csv")
    if session.validation is not None:
        write_frame_csv(session.validation.issues_frame(), output_path / "validation_issues.csv")


def run_calculate(args: argparse.Namespace, output_path: Path) -> None:
    session = load_session(args)
    results = session.payroll
    write_calculation_outputs(results, session, output_path)
    print(
        f"{results.employee_count} employees | monthly cost {results.totals['total_cost']:,.2f} | "
        f"annual cost {results.totals['annual_cost']:,.2f}"
    )


def run_simulate(args: argparse.Namespace, output_path: Path) -> None:
    session = load_session(args)
    params = build_simulation_params(args, session.config)
    run = session.simulate(params, top_n=args.top_n)
    comparison = run.comparison
    simulated = run.result.employees

    write_increment_workbook(comparison, simulated, output_path / "increment_analysis.xlsx")
    write_frame_csv(detail_frame(simulated), output_path / "increment_detail.csv")
    write_frame_csv(summary_frame(comparison).reset_index(), output_path / "increment_summary.csv")
    if args.pdf:
        headers, rows = increment_pdf_rows(simulated)
        write_report_pdf("Análisis de Impacto - Incremento Salarial", headers, rows,
                         output_path / "increment_analysis.pdf")
    print(
        f"{comparison.employee_count} employees | {comparison.percentage_count} with % increase | "
        f"{comparison.floored_count} floored to minimum wage | monthly impact {comparison.impact_total:,.2f} "
        f"({comparison.pct_impact:.2f}%) | annual impact {comparison.annual_impact:,.2f}"
    )


def run_analyze(args: argparse.Namespace, output_path: Path) -> None:
    session = load_session(args)
    if args.absences:
        session.load_absences(read_absence_file(args.absences))

    seniority = session.seniority()
    equity = session.equity()
    write_frame_csv(seniority.to_frame(), output_path / "seniority_bands.csv")
    write_frame_csv(equity.role_frame(), output_path / "equity_by_role.csv")
    write_frame_csv(pd.DataFrame(equity.by_seniority), output_path / "equity_by_seniority.csv")
    summary = (
        f"{seniority.employees_with_data} employees with hire date | average seniority "
        f"{seniority.average_years:.1f} years | gender gap {equity.gap:.2f}% ({equity.severity})"
    )

    if session.absences:
        absences = session.absence_analysis()
        write_frame_csv(absences.bradford_frame(), output_path / "bradford.csv")
        write_frame_csv(absences.vacation_frame(), output_path / "vacations.csv")
        summary += (
            f" | absence days {absences.summary['total_absence_days']:g} | "
            f"high or critical Bradford {absences.summary['high_count'] + absences.summary['critical_count']}"
        )
    print(summary)


COMMANDS = {
    "calculate": run_calculate,
    "simulate": run_simulate,
    "analyze": run_analyze,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the payroll_model CLI."""
    err_logger = logging.getLogger(ERROR_LOGGER)

    args = parse_arguments(argv)
    try:
        initialize_logging(debug=args.debug, log_dir=Path(args.log_dir))
    except OSError as e:
        print(f"FATAL: could not initialize logging: {e}", file=sys.stderr)
        return 1

    logging.getLogger(CALCULATION_LOGGER).info(f"Starting '{args.command}' run")
    logging.getLogger(PERFORMANCE_LOGGER).info("Performance monitoring initialized")
    logger.info(f"Starting run with arguments: {vars(args)}")

    output_path = Path(args.output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    logger.info(f"Output will be saved to: {output_path}")

    try:
        COMMANDS[args.command](args, output_path)
        return 0
    except ConfigLoadError as e:
        err_logger.error(f"Invalid configuration: {e}", exc_info=True)
    except DataReadError as e:
        err_logger.error(f"Could not read input: {e}", exc_info=True)
    except DataWriteError as e:
        err_logger.error(f"Could not write output: {e}", exc_info=True)
    except ValueError as e:
        err_logger.error(f"Invalid input: {e}", exc_info=True)
    return 1


if __name__ == "__main__":
    sys.exit(main())
