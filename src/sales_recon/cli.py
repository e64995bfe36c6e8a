"""
Command-line interface for Sales Recon.
"""

import argparse
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bson import json_util
from dotenv import load_dotenv

from . import __version__
from .reconciliation.date_range import parse_date_range
from .reconciliation.engine import SalesReconciliationEngine
from .reconciliation.exceptions import InvalidRangeError
from .reconciliation.models import ResolvedLine, SalesReport
from .reconciliation.normalizer import normalize_documents
from .reconciliation.service import SalesReportService
from .utils.config import Config
from .utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

ENV_ALIASES = {
    "staging": "stg",
    "stg": "stg",
    "production": "prod",
    "prod": "prod",
}

DB_CONFIGS = {
    "stg": {
        "db_name_key": "DB_NAME_STG",
        "connection_url": "DB_CONNECTION_URL_STG",
    },
    "prod": {
        "db_name_key": "DB_NAME_PROD",
        "connection_url": "DB_CONNECTION_URL_PROD",
    },
}

DETAIL_COLUMNS: List[Tuple[str, int, str]] = [
    ("Fecha", 16, "<"),
    ("Usuario", 18, "<"),
    ("Transacción", 11, "<"),
    ("Producto", 24, "<"),
    ("Marca", 12, "<"),
    ("Categoría", 12, "<"),
    ("Tono", 10, "<"),
    ("Cant", 5, ">"),
    ("Precio Real", 12, ">"),
    ("Precio Base", 12, ">"),
    ("Tipo Desc.", 20, "<"),
    ("% Desc.", 8, ">"),
    ("Vendido", 12, ">"),
    ("Total Línea", 13, ">"),
    ("Utilidad", 12, ">"),
    ("Margen", 8, ">"),
]


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        description="Sales Recon - Detailed Sales Reconciliation Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sales-recon --version
  sales-recon report --date-init 2024-05-01 --date-end 2024-05-31 --env production
  sales-recon report --date-init 2024-05-01 --date-end 2024-05-01 --show-audit --debug
  sales-recon reconcile-file --input export.json --show-audit
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Sales Recon {__version__}",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    parser.add_argument(
        "--log-file",
        help="Log file path",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
    )

    report_parser = subparsers.add_parser(
        "report",
        help="Build the detailed sales report for a date range from MongoDB",
    )
    report_parser.add_argument(
        "--date-init",
        help="First day of the report (YYYY-MM-DD)",
    )
    report_parser.add_argument(
        "--date-end",
        help="Last day of the report (YYYY-MM-DD)",
    )
    report_parser.add_argument(
        "--env",
        type=str,
        choices=sorted(ENV_ALIASES),
        default="staging",
        help="Database environment (default: staging)",
    )
    _add_output_arguments(report_parser)

    file_parser = subparsers.add_parser(
        "reconcile-file",
        help="Reconcile purchases and payments from an extended-JSON export",
    )
    file_parser.add_argument(
        "--input",
        required=True,
        help="JSON file with 'purchases' and 'payments' arrays (populated documents)",
    )
    file_parser.add_argument(
        "--date-init",
        help="Only include transactions from this day on (YYYY-MM-DD)",
    )
    file_parser.add_argument(
        "--date-end",
        help="Only include transactions up to this day (YYYY-MM-DD)",
    )
    _add_output_arguments(file_parser)

    return parser


def _add_output_arguments(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument(
        "--debug",
        action="store_true",
        help="Show the pricing trace of every line",
    )
    subparser.add_argument(
        "--show-audit",
        action="store_true",
        help="List every audit finding below the detail table",
    )
    subparser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Show at most this many detail lines (totals always cover the whole range)",
    )


def format_money(value: Any) -> str:
    """Format an amount with '.' as thousands separator, as in es-CO."""
    number = float(value or 0)
    if number.is_integer():
        text = f"{number:,.0f}"
    else:
        text = f"{number:,.2f}"
    return "$ " + text.replace(",", "_").replace(".", ",").replace("_", ".")


def _cell(value: Any, width: int, align: str) -> str:
    text = str(value)
    if len(text) > width:
        text = text[: width - 1] + "…"
    return f"{text:{align}{width}}"


def _line_cells(line: ResolvedLine) -> List[Any]:
    timestamp = line.timestamp.strftime("%Y-%m-%d %H:%M") if line.timestamp else ""
    return [
        timestamp,
        line.user_name,
        line.transaction_kind.value,
        line.product_name,
        line.brand,
        line.category,
        line.tone,
        line.quantity,
        format_money(line.real_price),
        format_money(line.individual_price),
        line.discount_kind.value,
        f"{line.discount_percent:.2f}%",
        format_money(line.sold_price),
        format_money(line.line_total),
        format_money(line.profit_total),
        f"{line.margin_percent:.2f}%",
    ]


def print_boxed(rows: Sequence[Tuple[str, Any]]) -> None:
    """Print label/value rows inside a box."""
    label_width = max(len(label) for label, _ in rows)
    inner_width = max(len(f" {label.ljust(label_width)} : {value}") for label, value in rows)
    print("┌" + "─" * inner_width + "┐")
    for label, value in rows:
        line = f" {label.ljust(label_width)} : {value}"
        print(f"│{line.ljust(inner_width)}│")
    print("└" + "─" * inner_width + "┘")


def render_report(
    report: SalesReport,
    header: Optional[List[Tuple[str, Any]]] = None,
    show_audit: bool = False,
    debug: bool = False,
    limit: Optional[int] = None,
) -> None:
    """Print the report summary, detail table and audit findings to stdout."""
    totals = report.totals
    rows = list(header or [])
    rows.extend([
        ("Rango", f"{report.date_init or '-'} a {report.date_end or '-'}"),
        ("Total Facturado", format_money(totals.grand_total_rounded)),
        ("Total Líneas", format_money(totals.lines_total)),
        ("Costo Total", format_money(totals.total_cost)),
        ("Utilidad Total", format_money(totals.total_profit)),
        ("Margen Global", f"{totals.global_margin:.2f}%"),
        ("Transacciones", totals.transaction_count),
        ("Productos Vendidos", totals.line_count),
    ])
    print_boxed(rows)

    lines = report.lines if limit is None else report.lines[: max(limit, 0)]
    print("\nVENTAS DETALLADAS:")
    header_line = " ".join(_cell(name, width, align) for name, width, align in DETAIL_COLUMNS)
    print(header_line)
    print("-" * len(header_line))
    for line in lines:
        cells = _line_cells(line)
        print(" ".join(
            _cell(value, width, align) for value, (_, width, align) in zip(cells, DETAIL_COLUMNS)
        ))
        if debug and line.trace is not None:
            trace = line.trace
            print(
                f"    trace: linea={trace.line_price} descuento={trace.stored_discount} "
                f"derivado={trace.derived_price} base={trace.base_price} "
                f"fuente={trace.discount_source or '-'} factor={trace.applied_factor:.6f}"
            )
    if len(lines) < len(report.lines):
        print(f"... {len(report.lines) - len(lines)} more lines not shown")
    print("-" * len(header_line))
    print(f"{'TOTAL':<{len(header_line) - 14}}{format_money(totals.lines_total):>14}")

    if totals.audit:
        status = "\033[1;33mFINDINGS\033[0m"
    else:
        status = "\033[1;32mPASSED\033[0m"
    print(f"\nAUDIT: {status} ({len(totals.audit)} findings)")
    if show_audit:
        for finding in totals.audit:
            print(
                f"   ⚠️  [{finding.kind.value}] {finding.transaction_kind.value} "
                f"{finding.transaction_id}: {finding.message}"
            )


def load_export(path: str) -> Dict[str, List[Dict[str, Any]]]:
    """
    Load purchases and payments from an extended-JSON export.

    Args:
        path: File holding an object with ``purchases`` and ``payments`` arrays

    Returns:
        Dictionary with both document lists (missing arrays are empty)
    """
    content = Path(path).read_text(encoding="utf-8")
    data = json_util.loads(content)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object with 'purchases' and 'payments'")
    return {
        "purchases": list(data.get("purchases") or []),
        "payments": list(data.get("payments") or []),
    }


def run_report(
    date_init: Optional[str],
    date_end: Optional[str],
    environment: str = "staging",
    debug: bool = False,
    show_audit: bool = False,
    limit: Optional[int] = None,
) -> SalesReport:
    """
    Build and print the detailed sales report from the database.

    Args:
        date_init: First day of the report (YYYY-MM-DD)
        date_end: Last day of the report (YYYY-MM-DD)
        environment: Database environment ("staging", "production", "stg", "prod")
        debug: Attach and print per-line pricing traces
        show_audit: Print every audit finding
        limit: Maximum number of detail lines to print
    """
    load_dotenv(".env")

    env_key = ENV_ALIASES.get(environment.lower(), "stg")
    db_config = DB_CONFIGS[env_key]
    db_name = os.getenv(db_config["db_name_key"]) or os.getenv("DB_NAME")

    service = SalesReportService(
        db_name=db_name,
        connection_url_env_key=db_config["connection_url"],
        debug=debug,
    )
    report = service.build_report(date_init, date_end)
    render_report(
        report,
        header=[("Environment", environment.upper()), ("Database", db_name)],
        show_audit=show_audit,
        debug=debug,
        limit=limit,
    )
    return report


def run_file(
    input_path: str,
    date_init: Optional[str] = None,
    date_end: Optional[str] = None,
    debug: bool = False,
    show_audit: bool = False,
    limit: Optional[int] = None,
) -> SalesReport:
    """Reconcile an offline export, optionally restricted to a date range."""
    config = Config(".env")
    export = load_export(input_path)
    transactions = normalize_documents(export["purchases"], export["payments"])

    if date_init is not None or date_end is not None:
        date_range = parse_date_range(date_init, date_end, config.get("report_timezone"))
        transactions = [t for t in transactions if date_range.contains(t.timestamp)]
        date_init, date_end = date_range.date_init, date_range.date_end

    engine = SalesReconciliationEngine(
        honor_recorded_surplus=config.get("honor_recorded_surplus", False),
        flag_discarded_totals=config.get("flag_discarded_totals", False),
        debug=debug,
    )
    report = engine.run(transactions, date_init=date_init, date_end=date_end)
    render_report(
        report,
        header=[("Source", input_path)],
        show_audit=show_audit,
        debug=debug,
        limit=limit,
    )
    return report


def main(args: Optional[list] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    log_level = "DEBUG" if parsed_args.verbose else "INFO"
    setup_logging(level=log_level, log_file=parsed_args.log_file)

    if not parsed_args.command:
        parser.print_help()
        return 1

    try:
        if parsed_args.command == "report":
            run_report(
                date_init=parsed_args.date_init,
                date_end=parsed_args.date_end,
                environment=parsed_args.env,
                debug=parsed_args.debug,
                show_audit=parsed_args.show_audit,
                limit=parsed_args.limit,
            )
        elif parsed_args.command == "reconcile-file":
            run_file(
                input_path=parsed_args.input,
                date_init=parsed_args.date_init,
                date_end=parsed_args.date_end,
                debug=parsed_args.debug,
                show_audit=parsed_args.show_audit,
                limit=parsed_args.limit,
            )
    except InvalidRangeError as e:
        logger.error(f"Invalid date range: {e}")
        return 2
    except Exception as e:
        logger.error(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
