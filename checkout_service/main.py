"""
main.py — FastAPI Entry Point for the Checkout Service

This module provides the REST API interface used by the storefront to start a
checkout. It is the boundary where every workflow failure is turned into one of
the fixed response shapes.

Responsibilities:
    • Answer cross-origin preflight requests
    • Accept checkout requests and run the checkout workflow
    • Attach the cross-origin headers to every response
    • Provide system health information
"""

import threading

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .clients import PaymentClient
from .config import CHECKOUT_HOST, CHECKOUT_LOG_FILE, CHECKOUT_PORT, CheckoutSettings, load_settings
from .exceptions import MissingInputError
from .logging_config import get_logger, setup_logging
from .repositories import MongoConnection, MongoCustomerRepository, MongoOrderRepository
from .workflow import CheckoutWorkflow, parse_checkout_request

# Initialization
setup_logging(log_file=CHECKOUT_LOG_FILE)
log = get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

MISSING_INPUT_MESSAGE = "Not enough data to checkout"
INTERNAL_ERROR_MESSAGE = "Internal Server Error"

_build_lock = threading.Lock()


def build_workflow(settings: CheckoutSettings) -> CheckoutWorkflow:
    """
    Wires the workflow to the real document store and payment processor.

    Opens the store connection and creates the customer index. If that fails the
    connection is closed again and the error propagates, so the next request retries.
    """
    connection = MongoConnection(settings.mongodb_url, settings.mongodb_db_name)
    customers = MongoCustomerRepository(connection)
    try:
        customers.ensure_indexes()
    except Exception:
        connection.close()
        raise
    return CheckoutWorkflow(
        customers=customers,
        orders=MongoOrderRepository(connection),
        payments=PaymentClient(settings.stripe_secret_key, settings.stripe_api_base),
        settings=settings,
    )


def get_workflow(app: FastAPI) -> CheckoutWorkflow:
    """
    Returns the process-wide workflow, building it on first use.
    Blocks on the store; call it from a worker thread.
    """
    with _build_lock:
        if app.state.workflow is None:
            app.state.workflow = build_workflow(load_settings())
        return app.state.workflow


def create_app(workflow: CheckoutWorkflow = None) -> FastAPI:
    """
    Builds the FastAPI application.

    Args:
        workflow (CheckoutWorkflow): Optional pre-built workflow (e.g. with in-memory
            repositories). When omitted, one is built from the environment on first use.
    """
    app = FastAPI(title="Storefront Checkout Service")
    app.state.workflow = workflow

    @app.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.on_event("shutdown")
    def on_shutdown():
        current = app.state.workflow
        if current is not None:
            connection = getattr(current.customers, "connection", None)
            if connection is not None:
                connection.close()
        log.info("Checkout service stopped.")

    # API Endpoint: Storefront → Checkout Service
    @app.options("/api/checkout")
    def checkout_preflight():
        """Cross-origin preflight: empty body, CORS headers only."""
        return Response()

    @app.post("/api/checkout")
    async def checkout(request: Request):
        """
        Runs the checkout workflow for the posted cart and returns the payment session.

        Returns:
            JSONResponse:
                - 200: the payment session descriptor (redirect the shopper to its `url`)
                - 400: {"error": "Not enough data to checkout"}
                - 500: {"error": "Internal Server Error"}
        """
        try:
            payload = await request.json()
            # Rejected before the store or the processor is touched
            checkout_request = parse_checkout_request(payload)

            # The workflow blocks on the store and the processor; keep it off the event loop.
            workflow = await run_in_threadpool(get_workflow, request.app)
            session = await run_in_threadpool(workflow.run, checkout_request)
            return JSONResponse(session)

        except MissingInputError as e:
            log.error(f"Checkout rejected, missing or invalid data: {e}")
            return JSONResponse({"error": MISSING_INPUT_MESSAGE}, status_code=400)

        except Exception:
            log.exception("[checkout_POST] Checkout failed.")
            return JSONResponse({"error": INTERNAL_ERROR_MESSAGE}, status_code=500)

    # Health Check Endpoint
    @app.get("/health")
    def health_check():
        """Simple health check endpoint for container orchestrators."""
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=CHECKOUT_HOST, port=CHECKOUT_PORT)
