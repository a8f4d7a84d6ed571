import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from .config import Settings, load_settings
from .routers import auth, products, search

logger = logging.getLogger(__name__)

FRAME_ANCESTORS = "frame-ancestors https://*.myshopify.com https://admin.shopify.com"


def create_app(settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """
    Build the application. Settings are resolved once here and shared with
    every handler through `app.state`, along with a single HTTP client.
    `transport` lets tests stub both upstream APIs.
    """
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.http = httpx.AsyncClient(timeout=settings.http_timeout, transport=transport)
        logger.info("Serving store %s (timeout %ss)", settings.shop_domain, settings.http_timeout)
        try:
            yield
        finally:
            await app.state.http.aclose()

    app = FastAPI(title="Stockshop", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def frame_ancestors(request: Request, call_next):
        response = await call_next(request)
        response.headers["Content-Security-Policy"] = FRAME_ANCESTORS
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request", "detail": jsonable_errors(exc)},
        )

    @app.get("/health")
    def healthcheck():
        return {"status": "ok", "env": settings.env}

    @app.get("/", include_in_schema=False)
    def index():
        page = settings.static_dir / "index.html" if settings.static_dir else None
        if page is None or not page.is_file():
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
        return FileResponse(page)

    app.include_router(search.router, prefix="/api", tags=["search"])
    app.include_router(products.router, prefix="/api", tags=["products"])
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    return app


def jsonable_errors(exc: RequestValidationError):
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in exc.errors()]


def run():
    settings = load_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
