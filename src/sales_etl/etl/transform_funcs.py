# src/sales_etl/etl/transform_funcs.py
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from sales_etl.errors import RowValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RowSchema:
    """Column positions of the business fields in an export row"""

    product_id: int = 1
    quantity: int = 3
    unit_price: int = 5
    country: int = 7


DEFAULT_SCHEMA = RowSchema()


@dataclass(frozen=True)
class SalesRecord:
    """One export row decoded into typed fields"""

    product_id: str
    country: str
    quantity: float
    unit_price: float

    @property
    def sales(self) -> float:
        return self.quantity * self.unit_price


@dataclass
class SalesAggregates:
    """Totals by product and by country for one run, plus rejected rows"""

    product_sales: Dict[str, float] = field(default_factory=dict)
    country_sales: Dict[str, float] = field(default_factory=dict)
    rows_accepted: int = 0
    rejected: List[RowValidationError] = field(default_factory=list)

    def add(self, record: SalesRecord) -> None:
        sales = record.sales
        self.product_sales[record.product_id] = (
            self.product_sales.get(record.product_id, 0.0) + sales
        )
        self.country_sales[record.country] = (
            self.country_sales.get(record.country, 0.0) + sales
        )
        self.rows_accepted += 1

    @property
    def rows_rejected(self) -> int:
        return len(self.rejected)


def _field(fields: Sequence[str], index: int, name: str, line_number: Optional[int]) -> str:
    if index >= len(fields):
        raise RowValidationError(
            name, None, f"row has only {len(fields)} fields", line_number
        )
    return fields[index]


def _parse_number(raw: str, name: str, line_number: Optional[int]) -> float:
    # float() tolerates padding and underscores; exports must not contain them
    if raw != raw.strip() or "_" in raw:
        raise RowValidationError(name, raw, "not a number", line_number)
    try:
        value = float(raw)
    except ValueError:
        raise RowValidationError(name, raw, "not a number", line_number) from None
    if not math.isfinite(value):
        raise RowValidationError(name, raw, "not a finite number", line_number)
    return value


def decode_row(
    fields: Sequence[str],
    schema: RowSchema = DEFAULT_SCHEMA,
    line_number: Optional[int] = None,
) -> SalesRecord:
    """
    Decode one raw row into a SalesRecord.

    Product id and country are taken verbatim. Quantity and unit price must be
    finite decimal numbers; otherwise RowValidationError is raised.
    """
    product_id = _field(fields, schema.product_id, "product id", line_number)
    country = _field(fields, schema.country, "country", line_number)
    quantity = _parse_number(
        _field(fields, schema.quantity, "quantity", line_number),
        "quantity",
        line_number,
    )
    unit_price = _parse_number(
        _field(fields, schema.unit_price, "unit price", line_number),
        "unit price",
        line_number,
    )
    return SalesRecord(
        product_id=product_id,
        country=country,
        quantity=quantity,
        unit_price=unit_price,
    )


def aggregate_sales(
    rows: Iterable[Sequence[str]],
    schema: RowSchema = DEFAULT_SCHEMA,
    first_line: int = 2,
) -> SalesAggregates:
    """
    Sum quantity * unit price per product and per country.

    Rows that fail to decode are logged, kept in ``rejected`` and contribute
    to neither total. ``first_line`` is the 1-based line number of the first
    row, used in diagnostics (2 when the export has a header).
    """
    aggregates = SalesAggregates()

    for line_number, fields in enumerate(rows, start=first_line):
        try:
            record = decode_row(fields, schema, line_number)
        except RowValidationError as e:
            logger.warning(f"Skipping row: {e}")
            aggregates.rejected.append(e)
            continue
        aggregates.add(record)

    logger.info(
        f"Aggregated {aggregates.rows_accepted} rows into "
        f"{len(aggregates.product_sales)} products and "
        f"{len(aggregates.country_sales)} countries "
        f"({aggregates.rows_rejected} rejected)"
    )
    return aggregates


def format_aggregate(title: str, data: Dict[str, float]) -> str:
    """Render one aggregate as '<title>:' followed by 'key: total' lines."""
    lines = [f"{title}:"]
    lines.extend(f"{key}: {data[key]:.2f}" for key in sorted(data))
    return "\n".join(lines)
