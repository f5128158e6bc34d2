from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.deps import get_auth_gateway
from app.api.routes.auth import router as auth_router
from app.api.routes.children import router as children_router
from app.api.routes.healthworkers import router as healthworkers_router
from app.api.routes.predict import router as predict_router
from app.api.routes.reports import router as reports_router
from app.db.session import SessionLocal, init_db
from app.services.auth_state import AuthState
from app.services.errors import DashboardError
from app.utils.logging_setup import configure_logging


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize logging, database schema and the auth projection."""
    configure_logging()
    init_db()

    auth_state = AuthState(get_auth_gateway(), SessionLocal)
    auth_state.start()
    app.state.auth_state = auth_state
    logger.info("Nutrition dashboard API started")

    yield

    auth_state.stop()


app = FastAPI(title="Anganwadi Nutrition Dashboard API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(predict_router)
app.include_router(children_router)
app.include_router(healthworkers_router)
app.include_router(reports_router)


@app.exception_handler(DashboardError)
async def _dashboard_error(request: Request, exc: DashboardError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.category, "detail": exc.detail},
    )


@app.exception_handler(RequestValidationError)
async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"error": "Validation Error", "detail": jsonable_encoder(exc.errors())},
    )


@app.get("/health")
def health():
    return {"status": "ok"}
