"""
Callout - Volunteer Emergency Call-Out Dispatch
"""

import logging
import os

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from routers import incidents, responders, lookups
from database import engine, Base, get_db
from errors import DispatchError
from models import Responder
from services.dispatch.notifier import build_notifier

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

CREATE_SCHEMA = os.environ.get("CALLOUT_CREATE_SCHEMA", "false").lower() in ("true", "1", "yes")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Callout starting up...")
    if CREATE_SCHEMA:
        Base.metadata.create_all(bind=engine)
        logger.info("Database schema ensured")
    yield
    # Shutdown
    logger.info("Callout shutting down...")


app = FastAPI(
    title="Callout API",
    description="Emergency call-out dispatch for volunteer responders",
    version="1.0.0",
    lifespan=lifespan
)
app.state.notifier = build_notifier()

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(DispatchError)
async def dispatch_error_handler(request: Request, exc: DispatchError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "ValidationError", "detail": "Invalid request", "details": details},
    )


# Routers
app.include_router(incidents.router, prefix="/api/incidents", tags=["Incidents"])
app.include_router(responders.router, prefix="/api/responders", tags=["Responders"])
app.include_router(lookups.router, prefix="/api/lookups", tags=["Lookups"])


@app.get("/")
async def root():
    return {"status": "ok", "service": "Callout API", "version": "1.0.0"}


@app.get("/health")
async def health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        responder_count = db.query(func.count(Responder.id)).scalar()
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "database": "error"})
    return {"status": "healthy", "database": "ok", "responderCount": responder_count}
