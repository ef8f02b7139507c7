import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from .http_client import HttpClient
from .models import dump_result
from .service import ScrapeService
from .settings import ScrapeConfig

logger = logging.getLogger(__name__)

SCRAPE_PATH = "/images/scrape"
CSRF_HEADER = "X-CSRF-Token"


class ScrapeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str
    method: str | None = Field(default=None, alias="_method")


def is_allowed_origin(config: ScrapeConfig, origin: str | None) -> bool:
    if origin is None:
        return config.allow_empty_origin
    origins = config.origins
    return not origins or origin in origins


def create_app(config: ScrapeConfig, service: ScrapeService | None = None) -> FastAPI:
    """
    Build the front door. Without an explicit `service` one is created on
    startup around a fresh HttpClient and torn down on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if service is not None:
            yield
            return
        async with HttpClient(config) as client:
            app.state.service = ScrapeService(config, client)
            logger.info("scraper ready: %r", config)
            yield
        logger.info("shutting down")

    app = FastAPI(title="artscraper", lifespan=lifespan)
    if service is not None:
        app.state.service = service

    async def answer(request: Request, scrape_req: ScrapeRequest) -> Response:
        result = await request.app.state.service.scrape(scrape_req.url)
        return Response(content=dump_result(result), status_code=200, media_type="application/json")

    @app.get(SCRAPE_PATH)
    async def scrape_get(
        request: Request,
        url: str | None = None,
        method: str | None = Query(default=None, alias="_method"),
    ):
        if not config.enable_get_request:
            return JSONResponse({"detail": "Method Not Allowed"}, status_code=405)
        if url is None:
            raise HTTPException(status_code=422, detail="missing url")
        return await answer(request, ScrapeRequest(url=url, method=method))

    @app.post(SCRAPE_PATH)
    async def scrape_post(request: Request, scrape_req: ScrapeRequest):
        if config.check_csrf_presence and not request.headers.get(CSRF_HEADER):
            return JSONResponse({"detail": "missing CSRF token"}, status_code=403)
        return await answer(request, scrape_req)

    @app.middleware("http")
    async def origin_check(request: Request, call_next):
        origin = request.headers.get("Origin")
        if not is_allowed_origin(config, origin):
            logger.debug("rejected origin %r", origin)
            return Response(status_code=404)
        return await call_next(request)

    @app.middleware("http")
    async def latency(request: Request, call_next):
        logger.debug("incoming request %s", request.url)
        start = time.perf_counter()
        response = await call_next(request)
        time_taken = f"{(time.perf_counter() - start) * 1000:1.4f}ms"
        logger.debug("request %s handled in %s", request.url, time_taken)
        response.headers["x-time-taken"] = time_taken
        return response

    return app
