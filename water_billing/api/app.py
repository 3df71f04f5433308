"""
HTTP Document Endpoint

The web UI and any other client read and write the whole JSON document
through /api/data. Downloads (CSV exports, printable invoices) are
rendered from the same document.

DESIGN DECISION: The endpoint is deliberately thin.
- GET returns exactly what is stored
- POST validates the body as AppData and overwrites the document
- Any storage failure is one generic 500; there is no partial success
  and no retry
"""

from contextlib import asynccontextmanager
from datetime import date
from typing import Annotated, Optional

import structlog
from fastapi import Depends, FastAPI, HTTPException, Path, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, Response

from water_billing import __version__
from water_billing.billing.balance import get_usage_for_period
from water_billing.billing.invoices import generate_invoice, invoices_for_period
from water_billing.config import AppSettings, get_settings
from water_billing.exports import (
    generate_activity_csv,
    generate_invoice_csv,
    render_invoice_page,
    render_invoices_page,
)
from water_billing.logging_setup import configure_from_settings
from water_billing.models.document import BILLING_PERIOD_PATTERN, AppData
from water_billing.services.storage import (
    DocumentStorageInterface,
    StorageError,
    create_storage,
)


logger = structlog.get_logger(__name__)

READ_FAILED = {"error": "Failed to read data"}
WRITE_FAILED = {"error": "Failed to write data"}


class DocumentReadError(Exception):
    """Raised by routes when the document cannot be loaded."""


class DocumentWriteError(Exception):
    """Raised by routes when the document cannot be saved."""


def get_storage(request: Request) -> DocumentStorageInterface:
    """
    The app's storage backend, created from settings on first use.

    A backend that cannot be built (e.g. GitHub selected without
    credentials) fails the request like any other storage error.
    """
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        try:
            storage = create_storage()
        except StorageError as e:
            logger.error("storage_unavailable", error=str(e))
            if request.method == "GET":
                raise DocumentReadError(str(e)) from e
            raise DocumentWriteError(str(e)) from e
        request.app.state.storage = storage
    return storage


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.app_settings


async def _load(storage: DocumentStorageInterface) -> AppData:
    try:
        return await storage.load()
    except StorageError as e:
        logger.error("document_load_failed", backend=storage.backend_name, error=str(e))
        raise DocumentReadError(str(e)) from e


def _attachment(content: str, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


BillingPeriodPath = Annotated[
    str,
    Path(pattern=BILLING_PERIOD_PATTERN, description="Billing period, YYYY-MM"),
]


def create_app(
    storage: Optional[DocumentStorageInterface] = None,
    app_settings: Optional[AppSettings] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        storage: Backend to use; created from settings on first request if omitted
        app_settings: Presentation settings; loaded from the environment if omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_from_settings(app.state.app_settings)
        logger.info("api_started", environment=app.state.app_settings.app_environment)
        yield
        logger.info("api_stopped")

    app = FastAPI(
        title="Water Billing Ledger",
        description="Document endpoint and downloads for the water billing ledger",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.storage = storage
    app.state.app_settings = app_settings or get_settings().app

    @app.exception_handler(DocumentReadError)
    async def document_read_error_handler(request: Request, exc: DocumentReadError):
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=READ_FAILED)

    @app.exception_handler(DocumentWriteError)
    async def document_write_error_handler(request: Request, exc: DocumentWriteError):
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=WRITE_FAILED)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    @app.get("/api/data")
    async def read_document(storage: DocumentStorageInterface = Depends(get_storage)):
        """Return the whole stored document."""
        data = await _load(storage)
        return JSONResponse(content=data.to_document())

    @app.post("/api/data")
    async def write_document(
        data: AppData,
        storage: DocumentStorageInterface = Depends(get_storage),
    ):
        """
        Overwrite the stored document.

        Returns:
            200: {"success": true}
            422: Body does not match the document schema
            500: {"error": "Failed to write data"}
        """
        try:
            await storage.save(data)
        except StorageError as e:
            logger.error("document_save_failed", backend=storage.backend_name, error=str(e))
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=WRITE_FAILED,
            )

        logger.info(
            "document_saved",
            backend=storage.backend_name,
            readings=len(data.readings),
            payments=len(data.payments),
        )
        return {"success": True}

    @app.get("/api/exports/activity.csv")
    async def export_activity(storage: DocumentStorageInterface = Depends(get_storage)):
        data = await _load(storage)
        return _attachment(generate_activity_csv(data), "text/csv", "activity.csv")

    @app.get("/api/exports/invoices/{period}.csv")
    async def export_invoices(
        period: BillingPeriodPath,
        storage: DocumentStorageInterface = Depends(get_storage),
    ):
        data = await _load(storage)
        invoices = invoices_for_period(data, period, today=date.today())
        return _attachment(
            generate_invoice_csv(data, invoices),
            "text/csv",
            f"invoices-{period}.csv",
        )

    @app.get("/api/invoices/{period}.html", response_class=HTMLResponse)
    async def print_invoices(
        period: BillingPeriodPath,
        storage: DocumentStorageInterface = Depends(get_storage),
        settings: AppSettings = Depends(get_app_settings),
    ):
        """Printable page with every invoice of the period."""
        data = await _load(storage)
        invoices = invoices_for_period(data, period, today=date.today())
        return HTMLResponse(
            render_invoices_page(data, invoices, period, settings.utility_name)
        )

    @app.get("/api/invoices/{period}/{property_id}.html", response_class=HTMLResponse)
    async def print_invoice(
        property_id: str,
        period: BillingPeriodPath,
        storage: DocumentStorageInterface = Depends(get_storage),
        settings: AppSettings = Depends(get_app_settings),
    ):
        """Printable page for one property; 404 when it used no water that period."""
        data = await _load(storage)
        prop = data.property_by_id(property_id)
        if prop is None or get_usage_for_period(property_id, period, data.readings) <= 0:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No invoice for {property_id} in {period}",
            )

        invoice = generate_invoice(
            prop,
            period,
            data.readings,
            data.payments,
            data.settings,
            today=date.today(),
        )
        return HTMLResponse(render_invoice_page(data, invoice, settings.utility_name))

    return app
