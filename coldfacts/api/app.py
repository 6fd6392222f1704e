"""HTTP API exposing knowledge generation and trending topics."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.engine import KnowledgeEngine
from ..core.errors import ColdFactsError
from ..models.config import Settings

logger = logging.getLogger(__name__)


class GenerateBody(BaseModel):
    keywords: Optional[str] = ""
    count: Optional[int] = None


router = APIRouter(prefix="/api")


def get_engine(request: Request) -> KnowledgeEngine:
    return request.app.state.engine


@router.post("/generate")
async def generate(body: Optional[GenerateBody] = None, engine: KnowledgeEngine = Depends(get_engine)):
    body = body or GenerateBody()
    count = body.count
    if count is not None:
        count = max(1, min(count, engine.settings.max_count))
    records = await engine.generate_knowledge(body.keywords or "", count)
    return {"knowledge": [record.to_wire() for record in records]}


@router.post("/trending")
async def trending(response: Response, engine: KnowledgeEngine = Depends(get_engine)):
    result = await engine.fetch_trending()
    response.headers["Cache-Control"] = engine.settings.trending_cache_control
    return {"topics": list(result.topics)}


@router.options("/generate")
@router.options("/trending")
async def preflight():
    return Response(status_code=200)


def create_app(settings: Optional[Settings] = None, engine: Optional[KnowledgeEngine] = None) -> FastAPI:
    """Build the FastAPI application around a shared engine."""
    settings = settings or (engine.settings if engine else Settings())
    engine = engine or KnowledgeEngine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting ColdFacts API")
        yield
        await app.state.engine.close()
        logger.info("ColdFacts API shut down")

    app = FastAPI(title="ColdFacts API", lifespan=lifespan)
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(ColdFactsError)
    async def pipeline_error_handler(request: Request, exc: ColdFactsError):
        logger.error(f"API Error on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 405:
            return JSONResponse(status_code=405, content={"error": "Method not allowed"})
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=422, content={"error": "Invalid request body"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(router)
    return app
