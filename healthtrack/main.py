"""FastAPI application: REST + intake WebSocket, CORS, store lifecycle."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from healthtrack.api_routes import router as api_router
from healthtrack.api_routes import send_response
from healthtrack.config import settings
from healthtrack.errors import HealthTrackError
from healthtrack.models import CallerRole
from healthtrack.storage import create_store
from healthtrack.websocket_handler import handle_intake_websocket

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store on startup, close it on shutdown."""
    if getattr(app.state, "store", None) is None:
        app.state.store = create_store(settings)
    logger.info(
        "Report LLM configured at: %s (model: %s)",
        settings.report_base_url,
        settings.report_model,
    )
    yield
    await app.state.store.close()
    logger.info("Shutting down.")


app = FastAPI(
    title="Health Tracker API",
    description="Patient symptom tracking and bounded report context assembly",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


@app.exception_handler(HealthTrackError)
async def health_track_error_handler(request: Request, exc: HealthTrackError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return send_response(exc.status_code, exc.message, error=exc.detail)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    )
    return send_response(400, "Invalid input", error=problems)


@app.websocket("/ws/intake")
async def intake_websocket_endpoint(websocket: WebSocket):
    patient_id = None
    if websocket.headers.get("x-caller-role", "").lower() == CallerRole.PATIENT.value:
        patient_id = websocket.headers.get("x-caller-id")
    await handle_intake_websocket(websocket, store=websocket.app.state.store, patient_id=patient_id)


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "store": type(getattr(app.state, "store", None)).__name__,
        "model": settings.report_model,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "healthtrack.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )
