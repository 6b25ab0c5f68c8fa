from __future__ import annotations

import argparse
from pathlib import Path

from dotenv import load_dotenv

from .catalog.filters import parse_inclusion_list
from .config import load_config
from .core import RunContext, setup_logging
from .pipeline import discover_tables, run_pipeline

PIPELINE_COMMANDS = {"run", "export", "load"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Copy PostgreSQL tables into Redshift via S3")
    parser.add_argument("--config", help="Optional JSON/YAML file overriding environment settings")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("validate-config", help="Validate configuration")
    subparsers.add_parser("list-tables", help="List in-scope tables and their mapped columns")
    subparsers.add_parser("run", help="Export and load every in-scope table")
    subparsers.add_parser("export", help="Export in-scope tables to the staging bucket only")
    subparsers.add_parser("load", help="Load previously staged exports only")

    for sub in subparsers.choices.values():
        sub.add_argument("--tables", help="Comma-separated tables to migrate, overriding TABLES_TO_EXPORT")
    return parser


def main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv()
    config = load_config(Path(args.config) if args.config else None)
    if args.tables:
        config = config.with_tables(parse_inclusion_list(args.tables))

    if args.command == "validate-config":
        print(f"Config OK: {config.source_params.describe()} -> {config.target_params.describe()}")
        return

    context = RunContext.create(Path(config.log_dir))
    logger = setup_logging(context.log_dir, context.run_id)

    if args.command == "list-tables":
        for table in discover_tables(config, logger):
            print(f"{table.name} ({table.type.value}) -> {config.target_schema}.{table.target_table_name}")
            for column in table.columns:
                print(f"    {column.name}: {column.source_type} -> {column.target_type}")
        return

    if args.command in PIPELINE_COMMANDS:
        result = run_pipeline(config, context, logger, mode=args.command)
        if not result.ok:
            failures = [(item.table, item.error) for item in result.failed]
            raise SystemExit(f"Run {context.run_id} completed with failures: {failures}")
        return

    raise SystemExit(f"Unknown command: {args.command}")


if __name__ == "__main__":
    main()
