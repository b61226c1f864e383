"""Main entrypoint and application factory for the document import API.

This module initializes the FastAPI application, configures logging, creates the database tables, and exposes the
Scalar API reference endpoint for interactive OpenAPI documentation. The background task queue is shut down with
the application.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from scalar_fastapi import get_scalar_api_reference
from sqlalchemy.exc import SQLAlchemyError

from docimport.api.dependencies import get_task_queue
from docimport.api.routes import router
from docimport.core.db import get_engine, init_db
from docimport.core.settings import get_settings
from docimport.core.utils import LOG_FORMAT, ensure_dir, get_logger

LOG_DIR = Path("jobs")


# --- Logging Setup ---
def setup_logging() -> None:
    """Configure logging to file and console, and ensure the log directory exists."""
    ensure_dir(LOG_DIR)
    logger = get_logger("doc-import", logging.getLevelName(get_settings().log_level.upper()))
    # Add file handler for persistent logs (not colorized)
    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        file_handler = logging.FileHandler(LOG_DIR / "ai_processing.log")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)
    logger.propagate = False


setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the tables on startup and drain the background queue on shutdown."""
    _ = app  # Silence unused argument warning
    logger = get_logger("doc-import")
    try:
        init_db(get_engine())
    except SQLAlchemyError:
        logger.exception("Failed to create the import tables")
        raise
    yield
    get_task_queue().shutdown(wait=True)


app = FastAPI(
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    title="Document Import API",
    description="""
    The Document Import API extracts transactions from uploaded receipts and bank statements with a language model,
    splitting large PDFs into page ranges processed in parallel, and commits reviewed drafts to the ledger.

    **Endpoints:**
    - `POST /process-document`: Trigger a dispatcher or worker run (immediate acknowledgement).
    - `POST /imports`: Upload a document and start extraction. Returns a `job_id`.
    - `GET /imports/{job_id}`: Poll job progress, status, and extracted drafts.
    - `GET /imports/{job_id}/chunks`: Chunk progress of a split document.
    - `POST /imports/{job_id}/reconcile`: Flag drafts that already exist in the ledger.
    - `POST /imports/{job_id}/confirm`: Commit approved drafts.
    - `GET /health`: Health check endpoint.
    - `GET /scalar`: Interactive Scalar OpenAPI documentation.
    """,
    version="1.0.0",
)
app.include_router(router)


@app.get("/scalar", include_in_schema=False)
async def scalar_docs() -> HTMLResponse:
    """Return Scalar API reference."""
    return get_scalar_api_reference(openapi_url=app.openapi_url, title=app.title)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("docimport.main:app", host=settings.server_host, port=settings.server_port, reload=True)
