import asyncio
import base64
import json
import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Dict, Optional, Tuple, Type, TypeVar

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.app.config import Settings
from backend.app.errors import ClientDisconnected, InputError, PayloadTooLargeError, RelayError
from backend.app.inference_client import InferenceClient
from backend.app.models.schemas import (
    AnalyzePhotoRequest,
    ComparePhotosRequest,
    DescribePhotoRequest,
    DescribeResult,
    ErrorResponse,
    HealthResponse,
    PhotoAnalysis,
    PhotoComparison,
    RequestBody,
)
from backend.app.services import photo_analysis

logger = logging.getLogger(__name__)

BodyT = TypeVar("BodyT", bound=RequestBody)

# Datei-Feld im Multipart-Formular -> (Base64-Feld, Medientyp-Feld)
ANALYZE_FILE_FIELDS = {
    "image": ("imageBase64", "mimeType"),
    "previousImage": ("previousImageBase64", "previousMimeType"),
}
COMPARE_FILE_FIELDS = {
    "before": ("beforeBase64", "beforeMime"),
    "after": ("afterBase64", "afterMime"),
}
DESCRIBE_FILE_FIELDS = {
    "photo": ("photoBase64", "photoMime"),
}

DISCONNECT_POLL_INTERVAL = 0.5
# Bilder pro Formular: höchstens zwei Fotos plus Reserve
MAX_FORM_FILES = 4

_ERROR_RESPONSES = {400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fehlender API-Key bricht den Start ab
    app.state.inference_client = InferenceClient(app.state.settings)
    logger.info("Relay gestartet, Modell=%s", app.state.settings.model)
    yield
    await app.state.inference_client.close()


def get_inference_client(request: Request) -> InferenceClient:
    client = getattr(request.app.state, "inference_client", None)
    if client is None:
        client = InferenceClient(request.app.state.settings)
        request.app.state.inference_client = client
    return client


async def read_body(request: Request, model: Type[BodyT], file_fields: Dict[str, Tuple[str, str]]) -> BodyT:
    """Liest JSON- oder Formular-Bodies; hochgeladene Dateien werden Base64-kodiert."""
    settings = request.app.state.settings
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        try:
            # Base64-Textfelder echter Fotos sind oft größer als Starlettes 1-MiB-Vorgabe
            form = await request.form(max_files=MAX_FORM_FILES, max_part_size=settings.max_body_bytes)
        except StarletteHTTPException as e:
            raise InputError("Invalid form body", detail=str(e.detail)) from e
        data = {}
        for key, value in form.items():
            if isinstance(value, UploadFile):
                if key not in file_fields:
                    continue
                b64_field, mime_field = file_fields[key]
                raw = await value.read()
                data[b64_field] = base64.b64encode(raw).decode("ascii") if raw else ""
                if value.content_type and not form.get(mime_field):
                    data[mime_field] = value.content_type
            else:
                data[key] = value
        return model.model_validate(data)

    raw_body = await request.body()
    # Ohne Content-Length (chunked) greift die Middleware nicht
    if len(raw_body) > settings.max_body_bytes:
        raise PayloadTooLargeError(detail=f"{len(raw_body)} Bytes")
    if not raw_body.strip():
        return model()
    try:
        data = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InputError("Invalid JSON body", detail=str(e)) from e
    if not isinstance(data, dict):
        raise InputError("Invalid JSON body", detail="JSON-Body ist kein Objekt")
    data = {key: value for key, value in data.items() if value is None or isinstance(value, str)}
    return model.model_validate(data)


async def run_until_disconnected(request: Request, work: Awaitable, poll_interval: float = DISCONNECT_POLL_INTERVAL):
    """Bricht den ausgehenden Aufruf ab, sobald der Client die Verbindung trennt."""
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                raise ClientDisconnected(detail=f"{request.method} {request.url.path}")
    finally:
        if not task.done():
            task.cancel()


async def _handle(
    request: Request,
    model: Type[BodyT],
    file_fields: Dict[str, Tuple[str, str]],
    operation: Callable[[BodyT, photo_analysis.ClientProvider, Settings], Awaitable],
):
    try:
        body = await read_body(request, model, file_fields)
        work = operation(body, lambda: get_inference_client(request), request.app.state.settings)
        return await run_until_disconnected(request, work)
    except RelayError:
        raise
    except Exception as e:
        logger.exception("Unerwarteter Fehler bei %s", request.url.path)
        raise RelayError(detail=str(e)) from e


async def relay_error_handler(request: Request, exc: RelayError) -> Response:
    if isinstance(exc, ClientDisconnected):
        logger.info("Client hat die Verbindung getrennt: %s", exc.detail)
        return Response(status_code=exc.status_code)
    if exc.status_code >= 500:
        logger.error("%s %s fehlgeschlagen: %s (%s)", request.method, request.url.path, exc.public_message, exc.detail)
    else:
        logger.info("%s %s abgelehnt: %s", request.method, request.url.path, exc.public_message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


async def unexpected_error_handler(request: Request, exc: Exception) -> Response:
    logger.exception("Unerwarteter Fehler bei %s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": RelayError.public_message})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title=settings.app_title, lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > settings.max_body_bytes:
            error = PayloadTooLargeError(detail=f"{length} Bytes")
            return JSONResponse(status_code=error.status_code, content={"error": error.public_message})
        return await call_next(request)

    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    @app.get("/", response_model=HealthResponse)
    @app.get("/health", response_model=HealthResponse)
    async def health():
        return {"status": "ok", "service": settings.app_title, "model": settings.model}

    @app.post("/api/analyze-photo", responses={200: {"model": PhotoAnalysis}, **_ERROR_RESPONSES})
    async def analyze_photo(request: Request):
        return await _handle(request, AnalyzePhotoRequest, ANALYZE_FILE_FIELDS, photo_analysis.analyze_photo)

    @app.post("/api/compare-photos", responses={200: {"model": PhotoComparison}, **_ERROR_RESPONSES})
    async def compare_photos(request: Request):
        return await _handle(request, ComparePhotosRequest, COMPARE_FILE_FIELDS, photo_analysis.compare_photos)

    @app.post("/analyze-photo", responses={200: {"model": DescribeResult}, **_ERROR_RESPONSES})
    async def describe_photo(request: Request):
        return await _handle(request, DescribePhotoRequest, DESCRIBE_FILE_FIELDS, photo_analysis.describe_photo)

    return app


def run() -> None:
    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


app = create_app()


if __name__ == "__main__":
    run()
