# featuretree/server/api.py
# FastAPI application: status service + feature tree editor API

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from featuretree import __version__
from featuretree.base.config import FeatureTreeConfig, get_config, setup_logging
from featuretree.data.db import Database
from featuretree.errors import ErrorCode, FeatureTreeError
from featuretree.server.routers import features, status, system
from featuretree.server.state import ApplicationState
from featuretree.tree.sync import load_workspace

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    setup_logging(config)
    logger.info(f"featuretree API starting on {config.api_host}:{config.api_port}")

    await Database.instance().init()

    state = ApplicationState.instance()
    state.local_store.init()
    forest = await load_workspace(
        state.store,
        state.local_store,
        state.sync,
        seed=config.seed_sample_data,
    )
    logger.info(f"Workspace loaded with {len(forest)} root features")

    yield

    logger.info("featuretree API shutting down...")
    await state.close()


async def feature_tree_error_handler(request: Request, exc: FeatureTreeError):
    """Render FeatureTreeError as its structured envelope."""
    logger.error(f"[API] {exc.code.value}: {exc.message}", extra={"details": exc.details})
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Boundary validation failures are 400s in the same envelope."""
    errors = exc.errors()
    code = ErrorCode.VALIDATION_FAILED
    locs = [err.get("loc", ()) for err in errors]
    if any("status" in loc for loc in locs):
        code = ErrorCode.VALIDATION_INVALID_STATUS
    elif any("name" in loc for loc in locs):
        code = ErrorCode.VALIDATION_EMPTY_NAME
    error = FeatureTreeError(
        code,
        "Request validation failed",
        details={
            "endpoint": str(request.url.path),
            "errors": [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in errors],
        },
    )
    logger.warning(f"[API] {error.code.value}: rejected request to {request.url.path}")
    return JSONResponse(status_code=error.http_status, content=error.to_dict())


def create_app(config: Optional[FeatureTreeConfig] = None) -> FastAPI:
    config = config or get_config()

    app = FastAPI(
        title="featuretree API",
        description="Feature prioritisation tree with per-feature test status",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_exception_handler(FeatureTreeError, feature_tree_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.allowed_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(system.router)
    app.include_router(status.router)
    app.include_router(features.router)
    return app


def serve(host: Optional[str] = None, port: Optional[int] = None) -> None:
    config = get_config()
    uvicorn.run(
        "featuretree.server.api:create_app",
        factory=True,
        host=host or config.api_host,
        port=port or config.api_port,
        reload=config.debug,
    )
