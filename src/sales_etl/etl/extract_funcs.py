# src/sales_etl/etl/extract_funcs.py
import io
import logging
import threading
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

import boto3
import pandas as pd
from botocore.exceptions import BotoCoreError, ClientError

from sales_etl.config import S3Location
from sales_etl.errors import ParseError, RetrievalError

logger = logging.getLogger(__name__)


@dataclass
class RecordBatch:
    """Parsed export: optional header plus the data rows, all fields as strings"""

    header: Optional[List[str]] = None
    rows: List[List[str]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)


def parse_records(payload: bytes) -> List[List[str]]:
    """
    Parse CSV bytes into a list of rows, every field kept verbatim as a string.

    Raises ParseError on malformed quoting, a row wider than the first row,
    or bytes that are not UTF-8. An empty payload yields no rows.
    """
    try:
        frame = pd.read_csv(
            io.BytesIO(payload),
            header=None,
            dtype=str,
            keep_default_na=False,
            na_filter=False,
            skip_blank_lines=True,
            encoding="utf-8",
        )
    except pd.errors.EmptyDataError:
        return []
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ParseError(f"Malformed CSV export: {e}") from e

    # Short rows are padded by pandas; keep them as empty strings
    return [
        ["" if pd.isna(value) else value for value in row]
        for row in frame.itertuples(index=False, name=None)
    ]


class S3RecordSource:
    """
    Reads one CSV export from S3.

    The object is fetched in a single get_object call and fully buffered
    before parsing; nothing is returned if either step fails.
    """

    def __init__(self, location: S3Location, has_header: bool = True, s3_client=None):
        self.location = location
        self.has_header = has_header
        self._s3_client = s3_client
        self._client_lock = threading.Lock()

    @property
    def s3_client(self):
        # Lazy so that building a source never touches the network. Request
        # threads share the source, and boto3's default session is not safe
        # to create clients from concurrently.
        if self._s3_client is None:
            with self._client_lock:
                if self._s3_client is None:
                    session = boto3.session.Session(region_name=self.location.region)
                    self._s3_client = session.client("s3")
        return self._s3_client

    def fetch_object_bytes(self) -> bytes:
        """Download the whole export."""
        bucket, key = self.location.bucket, self.location.key
        logger.info(f"Fetching {self.location.uri}")
        try:
            obj = self.s3_client.get_object(Bucket=bucket, Key=key)
            body = obj["Body"]
            try:
                payload = body.read()
            finally:
                body.close()
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to fetch {self.location.uri}: {e}")
            raise RetrievalError(bucket, key, e) from e

        logger.info(f"Fetched {len(payload):,} bytes from {self.location.uri}")
        return payload

    def read_records(self) -> RecordBatch:
        """Fetch and parse the export, splitting off the header row."""
        records = parse_records(self.fetch_object_bytes())

        if self.has_header and records:
            batch = RecordBatch(header=records[0], rows=records[1:])
        else:
            batch = RecordBatch(header=None, rows=records)

        logger.info(f"Parsed {len(batch)} data rows from {self.location.uri}")
        return batch

    def iter_rows(self) -> Iterator[List[str]]:
        """Yield data rows lazily once the whole export has been parsed."""
        yield from self.read_records().rows
