# src/sales_etl/api.py
"""
HTTP trigger for the sales pipeline.

GET /?action=print|insert runs one invocation and returns its outcome as
plain text. Pipeline errors are rendered in the body with status 200.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Query
from fastapi.responses import PlainTextResponse

from sales_etl import __version__
from sales_etl.errors import PipelineError
from sales_etl.orchestrator import SalesPipeline

logger = logging.getLogger(__name__)


def create_app(pipeline: SalesPipeline) -> FastAPI:
    """Build the FastAPI app around an already configured pipeline."""
    app = FastAPI(
        title="Sales Aggregation Pipeline",
        description="Aggregate the S3 sales export by product and country",
        version=__version__,
    )

    # Plain def: FastAPI runs it in its threadpool, one invocation per request
    @app.get("/", response_class=PlainTextResponse)
    def handle_action(action: Optional[str] = Query(None)) -> str:
        try:
            result = pipeline.run(action)
        except PipelineError as e:
            logger.error(f"Action {action!r} failed: {e}")
            return str(e)
        return result.message()

    @app.get("/health", response_class=PlainTextResponse)
    def health() -> str:
        return "ok"

    return app
