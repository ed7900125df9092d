# src/sales_etl/config.py
"""
Runtime settings, read from the process environment (and a .env file).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from sales_etl.errors import ConfigurationError

PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_LOG_CONFIG = PACKAGE_DIR / "logging.yaml"

DEFAULT_PRODUCT_TABLE = "product_sales"
DEFAULT_COUNTRY_TABLE = "country_sales"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class S3Location:
    """Where the sales export lives"""

    region: str
    bucket: str
    key: str

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


@dataclass(frozen=True)
class Settings:
    """Everything the triggers need to build a pipeline"""

    region: Optional[str] = None
    bucket: Optional[str] = None
    key: Optional[str] = None
    conn_string: Optional[str] = None
    product_table: str = DEFAULT_PRODUCT_TABLE
    country_table: str = DEFAULT_COUNTRY_TABLE
    load_failure_policy: str = "collect"
    csv_has_header: bool = True
    db_pool_min: int = 1
    db_pool_max: int = 5
    http_host: str = "0.0.0.0"
    http_port: int = 8080
    log_level: str = "INFO"
    log_config: Path = field(default=DEFAULT_LOG_CONFIG)

    @classmethod
    def from_env(
        cls, env: Optional[Mapping[str, str]] = None, env_file: Optional[str] = None
    ) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read instead of os.environ (tests)
            env_file: Optional .env file loaded before reading os.environ
        """
        if env is None:
            load_dotenv(env_file or find_dotenv(usecwd=True))
            env = os.environ

        return cls(
            region=env.get("REGION") or None,
            bucket=env.get("BUCKET") or None,
            key=env.get("KEY") or None,
            conn_string=env.get("REDSHIFT_CONN_STRING") or None,
            product_table=env.get("PRODUCT_TABLE", DEFAULT_PRODUCT_TABLE),
            country_table=env.get("COUNTRY_TABLE", DEFAULT_COUNTRY_TABLE),
            load_failure_policy=env.get("LOAD_FAILURE_POLICY", "collect").lower(),
            csv_has_header=_parse_bool("CSV_HAS_HEADER", env.get("CSV_HAS_HEADER", "true")),
            db_pool_min=_parse_int("DB_POOL_MIN", env.get("DB_POOL_MIN", "1")),
            db_pool_max=_parse_int("DB_POOL_MAX", env.get("DB_POOL_MAX", "5")),
            http_host=env.get("HTTP_HOST", "0.0.0.0"),
            http_port=_parse_int("HTTP_PORT", env.get("HTTP_PORT", "8080")),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            log_config=Path(env.get("LOG_CONFIG") or DEFAULT_LOG_CONFIG),
        )

    def source_location(self) -> S3Location:
        """Return the S3 location of the export, or fail naming what is missing."""
        missing = [
            name
            for name, value in (
                ("REGION", self.region),
                ("BUCKET", self.bucket),
                ("KEY", self.key),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required S3 configuration: {', '.join(missing)}"
            )
        return S3Location(region=self.region, bucket=self.bucket, key=self.key)

    def require_conn_string(self) -> str:
        if not self.conn_string:
            raise ConfigurationError(
                "Missing required warehouse configuration: REDSHIFT_CONN_STRING"
            )
        return self.conn_string

    def validate(self) -> List[str]:
        """Return a list of problems with the non-required settings."""
        problems = []
        if self.load_failure_policy not in ("collect", "fail_fast"):
            problems.append(
                f"LOAD_FAILURE_POLICY must be 'collect' or 'fail_fast', "
                f"got {self.load_failure_policy!r}"
            )
        if self.db_pool_min < 1:
            problems.append("DB_POOL_MIN must be at least 1")
        if self.db_pool_max < self.db_pool_min:
            problems.append("DB_POOL_MAX must be >= DB_POOL_MIN")
        if not 1 <= self.http_port <= 65535:
            problems.append(f"HTTP_PORT out of range: {self.http_port}")
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            problems.append(f"LOG_LEVEL not recognised: {self.log_level}")
        return problems


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")
