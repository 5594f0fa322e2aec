import time
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse
from asgi_correlation_id import CorrelationIdMiddleware, correlation_id

from catalog.config import DEFAULT_DATASET
from catalog.logging_setup import setup_logging, logger
from catalog.services.data_loader import load_dataset
from catalog.store import store
from catalog.routes import router

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    """
    setup_logging()
    logger.info("--- Application Starting Up ---")

    store.mark_loading()
    # The dataset loads in the background; readiness reports 503 until it is in place.
    store.run_in_background(load_dataset(DEFAULT_DATASET))

    yield
    logger.info("--- Application Shutting Down ---")

app = FastAPI(
    title="Manuscript Catalog API",
    description="Faceted search and merged-table reconstruction for manuscript descriptions.",
    version="1.0.0",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)


# MIDDLEWARE CONFIGURATION

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(CorrelationIdMiddleware)

@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """
    Global middleware to handle logging and uncaught exceptions.
    """
    start_time = time.time()
    logger.info(
        "Request received",
        extra={"method": request.method, "url": str(request.url)}
    )
    try:
        response = await call_next(request)
        process_time = (time.time() - start_time) * 1000
        logger.info(
            "Request completed",
            extra={
                "method": request.method,
                "url": str(request.url),
                "status_code": response.status_code,
                "process_time_ms": f"{process_time:.2f}",
            },
        )
        return response
    except Exception as e:
        request_id = correlation_id.get() or str(uuid.uuid4())
        logger.critical(
            "Unhandled exception",
            extra={"method": request.method, "url": str(request.url), "error": str(e)},
            exc_info=True,
        )
        return ORJSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "message": "An unexpected error occurred.",
                "correlation_id": request_id,
            },
        )

#ROUTER INCLUSION
app.include_router(router)
