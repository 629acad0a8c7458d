"""
Ops Board KPI API
FastAPI backend over the monthly aggregate store: attendance, efficiency,
safety and formulation KPIs per team and month.
"""
import os
import logging
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from opsboard.db import dispose_db, init_db
from opsboard.services.errors import KPIValidationError, PersistenceError
from opsboard.services.logging_config import setup_logging
from opsboard.services.middleware import RequestTimingMiddleware

# Load .env in dev (no-op when the file is missing)
load_dotenv()

_log_level = os.getenv("LOG_LEVEL", "INFO")
_json_logs = os.getenv("LOG_FORMAT", "json").lower() != "text"
setup_logging(level=_log_level, json_output=_json_logs)
logger = logging.getLogger("opsboard-api")

if not os.getenv("DATABASE_URL"):
    logger.warning("DATABASE_URL not set, using local SQLite (dev mode)")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tables are created here in dev; production runs the Alembic migration first
    await init_db()
    yield
    await dispose_db()


app = FastAPI(
    title="Ops Board KPI API",
    version="1.0.0",
    description="Monthly KPI scoring and aggregation for production teams",
    lifespan=lifespan,
)

_cors_default = "http://localhost:3000,http://localhost:5173"
cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", _cors_default).split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Accept"],
)
app.add_middleware(RequestTimingMiddleware)


@app.exception_handler(KPIValidationError)
async def kpi_validation_handler(request: Request, exc: KPIValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(PersistenceError)
async def persistence_handler(request: Request, exc: PersistenceError):
    logger.error(
        f"Aggregate store unavailable: {exc}",
        extra={"team_id": exc.team_id, "kpi_category": exc.kpi_category, "month_key": exc.month_key},
    )
    return JSONResponse(status_code=503, content={"detail": "KPI store unavailable, try again later"})


# Routers
from opsboard.api.kpi_routes import router as kpi_router  # noqa: E402

app.include_router(kpi_router)


@app.get("/health")
async def health_check():
    return {
        "status": "active",
        "version": "1.0.0",
        "database": "postgresql" if os.getenv("DATABASE_URL", "").startswith("postgres") else "sqlite",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("opsboard.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=True)
