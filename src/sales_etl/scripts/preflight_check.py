#!/usr/bin/env python3
"""
Check that the configured S3 export and the warehouse are reachable.
"""

import argparse
import logging
import sys
from typing import List, Optional

import boto3
import psycopg2
from botocore.exceptions import BotoCoreError, ClientError

from sales_etl.config import S3Location, Settings
from sales_etl.errors import PipelineError
from sales_etl.logging_setup import configure_logging

logger = logging.getLogger(__name__)


def check_s3_object(location: S3Location, s3_client=None) -> bool:
    s3_client = s3_client or boto3.client("s3", region_name=location.region)
    try:
        head = s3_client.head_object(Bucket=location.bucket, Key=location.key)
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Failed to access {location.uri}: {e}")
        return False
    logger.info(
        f"Successfully accessed {location.uri} ({head.get('ContentLength', 0):,} bytes)"
    )
    return True


def check_warehouse(conn_string: str, connect=psycopg2.connect) -> bool:
    try:
        conn = connect(conn_string)
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
        finally:
            conn.close()
    except psycopg2.Error as e:
        logger.error(f"Failed to connect to the warehouse: {e}")
        return False
    logger.info("Successfully connected to the warehouse.")
    return True


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip())
    parser.add_argument("--env-file", default=None)
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env(env_file=args.env_file)
    except PipelineError as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1
    configure_logging(settings.log_level, settings.log_config)

    try:
        location = settings.source_location()
        conn_string = settings.require_conn_string()
    except PipelineError as e:
        logger.error(str(e))
        return 1

    s3_ok = check_s3_object(location)
    db_ok = check_warehouse(conn_string)
    if s3_ok and db_ok:
        logger.info("Preflight check passed: S3 export and warehouse are reachable.")
        return 0
    logger.error("Preflight check failed.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
