# backend/app.py
import os
import time
from typing import Optional

# Load .env BEFORE any backend imports (they read env vars at import time)
from dotenv import load_dotenv
load_dotenv(override=True)

from fastapi import FastAPI, Request, Path, UploadFile, File
from fastapi.staticfiles import StaticFiles
from fastapi.responses import JSONResponse, Response, PlainTextResponse
from starlette.routing import Match

from backend import monitoring
from backend import db as dbmod
from backend import storage
from backend.schemas import BRDCreate, BRDContentUpdate, ChatMessageCreate

app = FastAPI(title="BRD Studio API")

# Initialize DB tables on startup
dbmod.init_db()

# ---------------------------------------------------------------------------
# Serve uploaded final documents
# ---------------------------------------------------------------------------
app.mount("/uploads", StaticFiles(directory=storage.ensure_upload_dir()), name="uploads")

E_NOT_FOUND = "E_NOT_FOUND"
E_NO_FILE = "E_NO_FILE"
E_INTERNAL = "E_INTERNAL"


def _error(status_code: int, error_code: str, message: str, **details) -> JSONResponse:
    content = {"status": "error", "error_code": error_code, "message": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _not_found(brd_id: str) -> JSONResponse:
    return _error(404, E_NOT_FOUND, "BRD not found", brd_id=brd_id)


def _internal(e: Exception) -> JSONResponse:
    return _error(500, E_INTERNAL, "Internal server error", exception=str(e))


# ---------------------------------------------------------------------------
# Metrics middleware
# ---------------------------------------------------------------------------
def _route_label(request: Request) -> str:
    # route template ("/api/brds/{brd_id}", "/uploads"), never the raw path;
    # must run before routing rewrites the scope
    for route in app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", "unmatched")
    return "unmatched"


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.time()
    endpoint = _route_label(request)
    method = request.method
    status = "500"
    try:
        response = await call_next(request)
        status = str(response.status_code)
        return response
    except Exception:
        monitoring.logger.exception("Unhandled exception in request", extra={"path": request.url.path})
        raise
    finally:
        monitoring.observe_request(start, endpoint, method, status)


# ---------------------------------------------------------------------------
# BRDs
# ---------------------------------------------------------------------------
@app.get("/api/brds")
def list_brds():
    """
    GET /api/brds
    All stored BRDs, newest first.
    """
    try:
        return JSONResponse(status_code=200, content=dbmod.list_brds())
    except Exception as e:
        monitoring.logger.exception("Unexpected error in GET /api/brds")
        return _internal(e)


@app.get("/api/brds/{brd_id}")
def get_brd(brd_id: str = Path(..., description="BRD id")):
    try:
        rec = dbmod.get_brd(brd_id)
    except Exception as e:
        monitoring.logger.exception("Unexpected error in GET /api/brds/{id}", extra={"brd_id": brd_id})
        return _internal(e)
    if not rec:
        return _not_found(brd_id)
    return JSONResponse(status_code=200, content=rec)


@app.post("/api/brds")
def create_brd(req: BRDCreate):
    """
    POST /api/brds
    Body: { "title", "content", "transcription", "extraNotes", "language" }
    """
    try:
        brd_id = dbmod.create_brd(req.model_dump())
    except Exception as e:
        monitoring.logger.exception("Unexpected error in POST /api/brds")
        return _internal(e)
    monitoring.logger.info("Stored BRD", extra={"brd_id": brd_id, "language": req.language})
    return JSONResponse(status_code=200, content={"id": brd_id})


@app.put("/api/brds/{brd_id}")
def update_brd(req: BRDContentUpdate, brd_id: str = Path(..., description="BRD id")):
    """
    PUT /api/brds/{id}
    Body: { "content": "..." }  replaces the BRD body (refinement / manual edit).
    """
    try:
        matched = dbmod.update_brd_content(brd_id, req.content)
    except Exception as e:
        monitoring.logger.exception("Unexpected error in PUT /api/brds/{id}", extra={"brd_id": brd_id})
        return _internal(e)
    if not matched:
        return _not_found(brd_id)
    return JSONResponse(status_code=200, content={"id": brd_id})


@app.post("/api/brds/{brd_id}/final")
def upload_final(brd_id: str = Path(..., description="BRD id"),
                 file: Optional[UploadFile] = File(None)):
    """
    POST /api/brds/{id}/final
    Multipart form with a single `file` field; stores it and records its path.
    """
    if file is None or not file.filename:
        return _error(400, E_NO_FILE, "No file uploaded")

    path = storage.save_upload(file.filename, file.file)
    try:
        matched = dbmod.set_final_doc_path(brd_id, path)
    except Exception as e:
        storage.discard(path)
        monitoring.logger.exception("Unexpected error in POST /api/brds/{id}/final")
        return _internal(e)
    if not matched:
        storage.discard(path)
        return _not_found(brd_id)

    monitoring.inc_upload_stored()
    monitoring.logger.info("Stored final document", extra={"brd_id": brd_id, "path": path})
    return JSONResponse(status_code=200, content={"path": path})


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------
@app.get("/api/brds/{brd_id}/chat")
def list_chat(brd_id: str = Path(..., description="BRD id")):
    """Chat turns for one BRD, oldest first."""
    try:
        return JSONResponse(status_code=200, content=dbmod.list_chat(brd_id))
    except Exception as e:
        monitoring.logger.exception("Unexpected error in GET /api/brds/{id}/chat", extra={"brd_id": brd_id})
        return _internal(e)


@app.post("/api/brds/{brd_id}/chat")
def append_chat(req: ChatMessageCreate, brd_id: str = Path(..., description="BRD id")):
    try:
        msg_id = dbmod.append_chat(brd_id, req.role, req.content)
    except Exception as e:
        monitoring.logger.exception("Unexpected error in POST /api/brds/{id}/chat")
        return _internal(e)
    return JSONResponse(status_code=200, content={"id": msg_id})


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/metrics")
async def metrics():
    if not monitoring.PROMETHEUS_ENABLED:
        return PlainTextResponse("Prometheus disabled", status_code=404)
    payload, content_type = monitoring.prometheus_metrics_response()
    return Response(content=payload, media_type=content_type)


def serve():
    """Console entry point: run the API with uvicorn."""
    import uvicorn
    uvicorn.run(
        "backend.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
    )
