from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

import config
from database import SqlBlobStore, create_db, engine
from routers.admin import router as admin_router
from routers.appointments import router as appointments_router
from routers.auth import router as auth_router
from routers.beds import router as beds_router
from routers.clinical import router as clinical_router
from routers.dashboard import router as dashboard_router
from routers.patients import router as patients_router
from routers.pharmacy import router as pharmacy_router
from routers.roster import router as roster_router
from seed import build_seed_snapshot
from services.access import Capability, allowed
from services.auth import get_user_from_token
from services.clinical_ai import ClinicalAssistant
from store import PersistenceError, StateStore, get_store
from ws import manager

logger = logging.getLogger("nexus")

API_ROUTERS = (
    auth_router,
    patients_router,
    beds_router,
    appointments_router,
    pharmacy_router,
    admin_router,
    roster_router,
    clinical_router,
    dashboard_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db()
    app.state.store = StateStore.load(SqlBlobStore(engine))
    app.state.assistant = ClinicalAssistant()
    logger.info("State store ready under key %s", app.state.store.key)
    yield


app = FastAPI(title="Nexus HMS", version="0.1.0", lifespan=lifespan)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled server error for %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.middleware("http")
async def no_cache_api_responses(request: Request, call_next):
    response = await call_next(request)
    if request.url.path not in ("/health",):
        response.headers["Cache-Control"] = "no-store, max-age=0"
        response.headers["Pragma"] = "no-cache"
        response.headers["Expires"] = "0"
    return response


for api_router in API_ROUTERS:
    app.include_router(api_router)
    app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
def health(store: StateStore = Depends(get_store)):
    try:
        store.blob_store.get(store.key)
        return {
            "status": "ok",
            "database": "connected",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    except Exception:
        logger.exception("Health check could not reach the blob store")
        return JSONResponse(status_code=500, content={"status": "error"})


@app.get("/demo/reset")
def demo_reset(store: StateStore = Depends(get_store)):
    if not config.demo_reset_enabled():
        raise HTTPException(status_code=404, detail="Not found")

    logger.warning("Demo reset triggered")
    try:
        store.commit(build_seed_snapshot())
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail="Could not save changes, please retry") from exc
    return {"status": "demo reset complete"}


async def _authorize_socket(websocket: WebSocket, store: StateStore) -> bool:
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008)
        return False

    try:
        user = get_user_from_token(token, store)
    except HTTPException:
        await websocket.close(code=1008)
        return False
    if not allowed(user.role, Capability.VIEW_BEDS):
        await websocket.close(code=1008)
        return False
    return True


@app.websocket("/ws/beds")
async def bed_board_ws(websocket: WebSocket, store: StateStore = Depends(get_store)):
    if not await _authorize_socket(websocket, store):
        return

    await manager.connect_board(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect_board(websocket)


@app.websocket("/ws/wards/{ward_id}")
async def ward_ws(websocket: WebSocket, ward_id: str, store: StateStore = Depends(get_store)):
    if not await _authorize_socket(websocket, store):
        return

    await manager.connect_ward(ward_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect_ward(ward_id, websocket)
