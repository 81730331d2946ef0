#!/usr/bin/env python3
"""Recipe Gateway HTTP API."""

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from config import Config, load_config
from gateway import GatewayRequest, RecipeGateway

logger = logging.getLogger(__name__)

RECIPE_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(config: Config | None = None, gateway: RecipeGateway | None = None) -> FastAPI:
    """Builds the API around one gateway instance."""
    config = config or Config()
    gateway = gateway or RecipeGateway(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        gateway.start()
        logger.info("Recipe gateway ready")
        try:
            yield
        finally:
            gateway.close()

    app = FastAPI(title="Recipe Gateway", version="0.1.0", lifespan=lifespan)
    app.state.gateway = gateway

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "cached_recipes": len(gateway.cache),
            "tracked_clients": len(gateway.limiter),
        }

    @app.api_route("/api/recipe", methods=RECIPE_METHODS)
    async def recipe(request: Request):
        body = None
        if request.method == "POST":
            try:
                body = await request.json()
            except ValueError:
                logger.debug("Request body is not valid JSON")

        gateway_request = GatewayRequest(
            method=request.method,
            body=body,
            headers=dict(request.headers),
            peer=request.client.host if request.client else None,
        )
        # The pipeline blocks on the page fetch
        result = await run_in_threadpool(gateway.handle, gateway_request)

        if result.body is None:
            return Response(status_code=result.status, headers=result.headers)
        return JSONResponse(result.body, status_code=result.status, headers=result.headers)

    return app


def main():
    try:
        config = load_config()
    except FileNotFoundError:
        config = Config()
        missing_config = True
    else:
        missing_config = False

    logging.basicConfig(
        level=getattr(logging, config.server.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    if missing_config:
        logger.warning("config.yaml not found, using defaults (see config.yaml.example)")

    logger.info(f"Allowed recipe sites: {len(config.allowed_domains)}")
    if "*" in config.server.cors_origins:
        logger.warning("CORS allows any origin")

    uvicorn.run(create_app(config), host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
