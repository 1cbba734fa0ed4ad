"""
FastAPI application exposing the vote tally.

Project: Distributed Voting System
Description: Read-only results endpoint over the worker's votes table
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Dict

import asyncpg
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from .config import settings
from .database import DatabaseError, database
from .models import ErrorResponse, HealthResponse

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Prometheus metrics
results_requests = Counter(
    "results_requests_total",
    "Total number of tally requests",
    ["status"]
)
request_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"]
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"Starting {settings.SERVICE_NAME} service...")

    try:
        await database.initialize()
    except (asyncpg.PostgresError, OSError) as e:
        # Requests retry the connection; the API stays up meanwhile
        logger.warning(f"Database not available at startup: {e}")

    logger.info(f"{settings.SERVICE_NAME} started successfully")

    yield

    logger.info(f"Shutting down {settings.SERVICE_NAME} service...")
    await database.close()


app = FastAPI(
    title="Vote Results API",
    description="Aggregate vote counts per choice",
    version="2.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.middleware("http")
async def prometheus_middleware(request: Request, call_next):
    """Middleware to track request duration."""
    start_time = time.perf_counter()
    response = await call_next(request)
    request_duration.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code
    ).observe(time.perf_counter() - start_time)
    return response


@app.get(
    "/api/votes",
    response_model=Dict[str, int],
    responses={500: {"model": ErrorResponse, "description": "Database error"}}
)
async def get_votes():
    """
    Get the number of voters per choice.

    Choices listed in DEFAULT_CHOICES are always present, with 0 when
    nobody picked them; any other recorded choice is included as well.
    """
    try:
        counts = await database.get_vote_counts()
    except DatabaseError as e:
        logger.error(f"Database query error: {e}")
        results_requests.labels(status="error").inc()
        return JSONResponse(status_code=500, content={"error": "Database error"})

    votes = {choice: 0 for choice in settings.DEFAULT_CHOICES}
    votes.update(counts)

    results_requests.labels(status="success").inc()
    return votes


@app.get("/health", response_model=HealthResponse)
async def health():
    """Report service and database status."""
    db_ok = await database.health_check()
    return HealthResponse(
        status="healthy" if db_ok else "unhealthy",
        service=settings.SERVICE_NAME,
        database="connected" if db_ok else "disconnected"
    )


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def run():
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level="debug" if settings.DEBUG else "info"
    )


if __name__ == "__main__":
    run()
