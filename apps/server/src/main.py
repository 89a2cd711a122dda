from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import logging, time

from config import settings
from api.router import router as api_router
from services.news import news_aggregator
from services.socrata import socrata_client

logger = logging.getLogger("waterlab.server")
if not logger.handlers:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

def create_app() -> FastAPI:
    app = FastAPI(title=settings.app_name, version=settings.app_version)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        dur_ms = (time.perf_counter() - start) * 1000.0
        logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, dur_ms)
        return response

    @app.get("/", tags=["meta"])
    async def root():
        return {"name": settings.app_name, "version": settings.app_version}

    @app.get("/health", tags=["meta"])
    async def health():
        return JSONResponse({"status": "ok", "version": settings.app_version})

    app.include_router(api_router)

    @app.on_event("startup")
    async def _startup():
        logger.info("Serving water data; snapshot at %s", settings.snapshot_path)
        if not settings.foen_enabled:
            logger.info("FOEN integration disabled; serving opendata.bs.ch and the local snapshot.")

    @app.on_event("shutdown")
    async def _shutdown():
        await socrata_client.close()
        await news_aggregator.close()

    return app

app = create_app()
