#!/usr/bin/env python3
"""
Command line trigger.

    sales-etl --action print     # aggregate and print the totals
    sales-etl --action insert    # aggregate and load the totals
    sales-etl                    # serve GET /?action=... over HTTP
"""

import argparse
import logging
import sys
from typing import List, Optional

import uvicorn

from sales_etl.api import create_app
from sales_etl.config import Settings
from sales_etl.errors import PipelineError
from sales_etl.etl.load_funcs import WarehousePool
from sales_etl.logging_setup import configure_logging
from sales_etl.orchestrator import Action, SalesPipeline, parse_action

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sales-etl",
        description="Aggregate the S3 sales export by product and country",
    )
    parser.add_argument(
        "--action",
        help="Specify the action to perform: print or insert. "
        "Without it an HTTP server is started.",
    )
    parser.add_argument(
        "--env-file", default=None, help="Path to a .env file (default: ./.env)"
    )
    return parser


def open_warehouse(settings: Settings) -> WarehousePool:
    return WarehousePool(
        settings.require_conn_string(),
        minconn=settings.db_pool_min,
        maxconn=settings.db_pool_max,
    )


def run_once(settings: Settings, action_name: str) -> int:
    """Run a single invocation and report the outcome on stdout/stderr."""
    try:
        action = parse_action(action_name)
        pipeline = SalesPipeline.from_settings(settings)
        if action is Action.INSERT:
            pipeline.warehouse = open_warehouse(settings)
        try:
            result = pipeline.run(action.value)
        finally:
            if pipeline.warehouse is not None:
                pipeline.warehouse.close()
    except PipelineError as e:
        logger.error(f"Action {action_name!r} failed: {e}")
        print(e, file=sys.stderr)
        return 1

    print(result.message())
    return 0


def serve(settings: Settings) -> int:
    """Serve the HTTP trigger until interrupted."""
    try:
        pipeline = SalesPipeline.from_settings(settings)
        pipeline.warehouse = open_warehouse(settings)
    except PipelineError as e:
        logger.error(str(e))
        return 1

    try:
        app = create_app(pipeline)
        logger.info(f"Listening on {settings.http_host}:{settings.http_port}")
        uvicorn.run(
            app, host=settings.http_host, port=settings.http_port, log_config=None
        )
    finally:
        pipeline.warehouse.close()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_env(env_file=args.env_file)
    except PipelineError as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1
    problems = settings.validate()
    if problems:
        print(f"Error loading configuration: {'; '.join(problems)}", file=sys.stderr)
        return 1

    configure_logging(settings.log_level, settings.log_config)

    if args.action is None:
        return serve(settings)
    return run_once(settings, args.action)


if __name__ == "__main__":
    sys.exit(main())
