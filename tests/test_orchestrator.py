import pytest

from conftest import FakeConnection, FakePool, FakeSource, make_row
from sales_etl.config import Settings
from sales_etl.errors import (
    BatchLoadError,
    ConfigurationError,
    InvalidActionError,
    RetrievalError,
)
from sales_etl.etl.load_funcs import LoadFailurePolicy
from sales_etl.orchestrator import Action, SalesPipeline, parse_action

ROWS = [
    make_row("P1", "2", "10.0", "US"),
    make_row("P1", "3", "10.0", "CA"),
    make_row("P2", "1", "99.5", "US"),
    make_row("P3", "abc", "5.0", "DE"),
]


def test_parse_action():
    assert parse_action("print") is Action.PRINT
    assert parse_action("insert") is Action.INSERT


@pytest.mark.parametrize("name", ["delete", "", None, "PRINT"])
def test_parse_action_rejects_unknown(name):
    with pytest.raises(InvalidActionError):
        parse_action(name)


def test_print_formats_both_aggregates():
    pipeline = SalesPipeline(FakeSource(ROWS))
    result = pipeline.run("print")

    assert result.aggregates.product_sales == {"P1": 50.0, "P2": 99.5}
    assert result.aggregates.country_sales == {"US": 119.5, "CA": 30.0}
    assert result.message() == (
        "Product Sales:\nP1: 50.00\nP2: 99.50\n"
        "Country Sales:\nCA: 30.00\nUS: 119.50\n"
        "Action print executed successfully"
    )


def test_print_header_only_source():
    result = SalesPipeline(FakeSource([])).run("print")
    assert result.message() == (
        "Product Sales:\nCountry Sales:\nAction print executed successfully"
    )


def test_print_is_repeatable():
    pipeline = SalesPipeline(FakeSource(ROWS))
    assert pipeline.run("print").message() == pipeline.run("print").message()


def test_unknown_action_touches_nothing():
    source = FakeSource(ROWS)
    pool = FakePool()
    pipeline = SalesPipeline(source, warehouse=pool)

    with pytest.raises(InvalidActionError):
        pipeline.run("delete")

    assert source.calls == 0
    assert pool.checkouts == 0


def test_insert_loads_product_then_country():
    pool = FakePool()
    pipeline = SalesPipeline(FakeSource(ROWS), warehouse=pool)
    result = pipeline.run("insert")

    assert result.message() == "Action insert executed successfully"
    assert [r.table for r in result.load_reports] == ["product_sales", "country_sales"]
    assert pool.conn.committed == [
        ("P1", 50.0),
        ("P2", 99.5),
        ("CA", 30.0),
        ("US", 119.5),
    ]
    assert pool.checkouts == 1


def test_insert_uses_configured_tables():
    pipeline = SalesPipeline(
        FakeSource(ROWS),
        warehouse=FakePool(),
        product_table="analytics.by_product",
        country_table="analytics.by_country",
    )
    result = pipeline.run("insert")
    assert [r.table for r in result.load_reports] == [
        "analytics.by_product",
        "analytics.by_country",
    ]


def test_insert_failure_still_loads_country_table():
    pool = FakePool(FakeConnection(failing_keys={"P1"}))
    pipeline = SalesPipeline(FakeSource(ROWS), warehouse=pool)

    with pytest.raises(BatchLoadError) as exc_info:
        pipeline.run("insert")

    errors = exc_info.value.errors
    assert [(e.table, e.key) for e in errors] == [("product_sales", "P1")]
    assert dict(pool.conn.committed) == {"P2": 99.5, "CA": 30.0, "US": 119.5}
    assert "product_sales" in str(exc_info.value)


def test_insert_reports_failures_from_both_tables():
    pool = FakePool(FakeConnection(failing_keys={"P2", "US"}))
    pipeline = SalesPipeline(FakeSource(ROWS), warehouse=pool)

    with pytest.raises(BatchLoadError) as exc_info:
        pipeline.run("insert")

    assert [(e.table, e.key) for e in exc_info.value.errors] == [
        ("product_sales", "P2"),
        ("country_sales", "US"),
    ]


def test_insert_fail_fast_policy():
    rows = [make_row("P1", "1", "1", "US"), make_row("P2", "1", "1", "US"), make_row("P3", "1", "1", "CA")]
    pool = FakePool(FakeConnection(failing_keys={"P1"}))
    pipeline = SalesPipeline(
        FakeSource(rows), warehouse=pool, policy=LoadFailurePolicy.FAIL_FAST
    )

    with pytest.raises(BatchLoadError):
        pipeline.run("insert")

    # product table stopped at P1; country table still attempted in full
    assert [a[0] for a in pool.conn.attempts] == ["P1", "CA", "US"]


def test_insert_without_warehouse():
    source = FakeSource(ROWS)
    with pytest.raises(ConfigurationError):
        SalesPipeline(source).run("insert")
    assert source.calls == 0


def test_retrieval_error_propagates_before_load():
    error = RetrievalError("sales-bucket", "exports/sales.csv", Exception("timeout"))
    pool = FakePool()
    pipeline = SalesPipeline(FakeSource(error=error), warehouse=pool)

    with pytest.raises(RetrievalError):
        pipeline.run("insert")
    assert pool.checkouts == 0


def test_first_line_without_header():
    source = FakeSource([make_row("P1", "x", "1", "US")], header=None)
    result = SalesPipeline(source).run("print")
    assert result.aggregates.rejected[0].line_number == 1


def test_from_settings():
    settings = Settings.from_env(
        {
            "REGION": "eu-west-1",
            "BUCKET": "b",
            "KEY": "k.csv",
            "LOAD_FAILURE_POLICY": "fail_fast",
            "PRODUCT_TABLE": "p",
            "COUNTRY_TABLE": "c",
            "CSV_HAS_HEADER": "false",
        }
    )
    pipeline = SalesPipeline.from_settings(settings)

    assert pipeline.source.location.region == "eu-west-1"
    assert pipeline.source.has_header is False
    assert pipeline.policy is LoadFailurePolicy.FAIL_FAST
    assert (pipeline.product_table, pipeline.country_table) == ("p", "c")


def test_from_settings_rejects_bad_policy():
    settings = Settings.from_env(
        {"REGION": "r", "BUCKET": "b", "KEY": "k", "LOAD_FAILURE_POLICY": "retry"}
    )
    with pytest.raises(ConfigurationError, match="LOAD_FAILURE_POLICY"):
        SalesPipeline.from_settings(settings)
