# src/sales_etl/orchestrator.py
"""
Pipeline orchestration: Source -> Aggregator -> Loader for one action.

An invocation keeps no state between runs; only the warehouse pool is
shared between concurrent invocations.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from sales_etl.config import Settings
from sales_etl.errors import BatchLoadError, ConfigurationError, InvalidActionError
from sales_etl.etl.extract_funcs import S3RecordSource
from sales_etl.etl.load_funcs import (
    LoadFailurePolicy,
    LoadReport,
    WarehousePool,
    insert_aggregate,
)
from sales_etl.etl.transform_funcs import (
    DEFAULT_SCHEMA,
    RowSchema,
    SalesAggregates,
    aggregate_sales,
    format_aggregate,
)

logger = logging.getLogger(__name__)


class Action(Enum):
    PRINT = "print"
    INSERT = "insert"


def parse_action(name: Optional[str]) -> Action:
    """Map an action name to an Action, raising InvalidActionError otherwise."""
    try:
        return Action(name)
    except ValueError:
        raise InvalidActionError(name) from None


@dataclass
class PipelineResult:
    """What one invocation produced"""

    action: Action
    aggregates: SalesAggregates
    load_reports: List[LoadReport] = field(default_factory=list)

    def report_text(self) -> str:
        """Both aggregates as human-readable text, product section first."""
        return "\n".join(
            [
                format_aggregate("Product Sales", self.aggregates.product_sales),
                format_aggregate("Country Sales", self.aggregates.country_sales),
            ]
        )

    def message(self) -> str:
        done = f"Action {self.action.value} executed successfully"
        if self.action is Action.PRINT:
            return f"{self.report_text()}\n{done}"
        return done


class SalesPipeline:
    """Runs the print or insert action against one export"""

    def __init__(
        self,
        source: S3RecordSource,
        warehouse: Optional[WarehousePool] = None,
        product_table: str = "product_sales",
        country_table: str = "country_sales",
        policy: LoadFailurePolicy = LoadFailurePolicy.COLLECT,
        schema: RowSchema = DEFAULT_SCHEMA,
    ):
        self.source = source
        self.warehouse = warehouse
        self.product_table = product_table
        self.country_table = country_table
        self.policy = policy
        self.schema = schema

    @classmethod
    def from_settings(
        cls, settings: Settings, warehouse: Optional[WarehousePool] = None
    ) -> "SalesPipeline":
        problems = settings.validate()
        if problems:
            raise ConfigurationError("; ".join(problems))
        source = S3RecordSource(
            settings.source_location(), has_header=settings.csv_has_header
        )
        return cls(
            source,
            warehouse=warehouse,
            product_table=settings.product_table,
            country_table=settings.country_table,
            policy=LoadFailurePolicy(settings.load_failure_policy),
        )

    def aggregate(self) -> SalesAggregates:
        batch = self.source.read_records()
        first_line = 2 if batch.header is not None else 1
        return aggregate_sales(batch.rows, self.schema, first_line=first_line)

    def run(self, action_name: Optional[str]) -> PipelineResult:
        """
        Execute one invocation.

        The action is validated before the source is read. For insert, both
        tables are always attempted (product first); any per-key failures are
        raised together as BatchLoadError afterwards.
        """
        action = parse_action(action_name)
        if action is Action.INSERT and self.warehouse is None:
            raise ConfigurationError(
                "Missing required warehouse configuration: REDSHIFT_CONN_STRING"
            )

        logger.info(f"Running action {action.value}")
        aggregates = self.aggregate()
        result = PipelineResult(action=action, aggregates=aggregates)

        if action is Action.PRINT:
            return result

        with self.warehouse.connection() as conn:
            for table, data in (
                (self.product_table, aggregates.product_sales),
                (self.country_table, aggregates.country_sales),
            ):
                result.load_reports.append(
                    insert_aggregate(conn, table, data, self.policy)
                )

        errors = [e for report in result.load_reports for e in report.errors]
        if errors:
            raise BatchLoadError(errors)
        return result
