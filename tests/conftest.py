# tests/conftest.py
import io
import os
import sys
import logging
from contextlib import contextmanager
from unittest.mock import MagicMock

import psycopg2
import pytest

# Configure logging for tests
logging.basicConfig(level=logging.INFO)

# Add the 'src' directory to sys.path so tests run without an install
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_PATH = os.path.join(PROJECT_ROOT, "src")
sys.path.insert(0, SRC_PATH)

from sales_etl.config import S3Location  # noqa: E402
from sales_etl.etl.extract_funcs import RecordBatch  # noqa: E402

HEADER = [
    "order_id",
    "product_id",
    "product_name",
    "quantity",
    "currency",
    "unit_price",
    "channel",
    "country",
]

SAMPLE_CSV = (
    b"order_id,product_id,product_name,quantity,currency,unit_price,channel,country\n"
    b"1,P1,Widget,2,USD,10.0,web,US\n"
    b"2,P1,Widget,3,USD,10.0,store,CA\n"
    b'3,P2,"Gadget, large",1,USD,99.5,web,US\n'
    b"4,P3,Gizmo,abc,USD,5.0,web,DE\n"
)


def make_row(product_id, quantity, unit_price, country):
    """Build an 8-field export row with the business fields in place."""
    return ["_", product_id, "_", quantity, "_", unit_price, "_", country]


class FakeSource:
    """Record source double that counts reads"""

    def __init__(self, rows=None, header=HEADER, error=None):
        self.batch = RecordBatch(header=header, rows=list(rows or []))
        self.error = error
        self.calls = 0

    def read_records(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.batch


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, query, params=None):
        self.conn.attempts.append(params)
        if params and params[0] in self.conn.failing_keys:
            raise psycopg2.IntegrityError(
                f'duplicate key value violates unique constraint "{params[0]}"'
            )
        self.conn.pending.append(params)


class FakeConnection:
    """Records committed (id, total_sales) rows; fails for chosen keys"""

    closed = 0

    def __init__(self, failing_keys=()):
        self.failing_keys = set(failing_keys)
        self.attempts = []
        self.pending = []
        self.committed = []
        self.rollbacks = 0

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        self.committed.extend(self.pending)
        self.pending = []

    def rollback(self):
        self.pending = []
        self.rollbacks += 1


class FakePool:
    """WarehousePool double handing out a single FakeConnection"""

    def __init__(self, conn=None):
        self.conn = conn or FakeConnection()
        self.checkouts = 0
        self.closed = False

    @contextmanager
    def connection(self):
        self.checkouts += 1
        yield self.conn

    def close(self):
        self.closed = True


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV


@pytest.fixture
def location():
    return S3Location(region="us-east-1", bucket="sales-bucket", key="exports/sales.csv")


@pytest.fixture
def fake_s3_client(sample_csv):
    """boto3 S3 client double serving SAMPLE_CSV"""
    client = MagicMock()
    client.get_object.side_effect = lambda **kwargs: {"Body": io.BytesIO(sample_csv)}
    return client


@pytest.fixture
def fake_pool():
    return FakePool()


@pytest.fixture
def pipeline_env(monkeypatch, tmp_path):
    """Environment for a complete run; returns a --env-file path that does not exist"""
    monkeypatch.setenv("REGION", "us-east-1")
    monkeypatch.setenv("BUCKET", "sales-bucket")
    monkeypatch.setenv("KEY", "exports/sales.csv")
    monkeypatch.setenv("REDSHIFT_CONN_STRING", "postgresql://user:pw@localhost:5439/dev")
    for name in ("LOAD_FAILURE_POLICY", "PRODUCT_TABLE", "COUNTRY_TABLE", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return str(tmp_path / "missing.env")


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")


def pytest_collection_modifyitems(config, items):
    """Mark everything that is not an integration test as a unit test"""
    for item in items:
        if "integration" not in item.keywords:
            item.add_marker(pytest.mark.unit)
