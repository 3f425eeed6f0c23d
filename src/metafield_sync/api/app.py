"""HTTP surface for starting and polling the full sync and receiving webhooks.

Routes:
    POST /sync                              start a full sync in the background
    GET  /sync/progress                     poll the current progress
    POST /webhooks/inventory_levels/update  apply one inventory level change
    GET  /health                            liveness check
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Header, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from metafield_sync.ingestion.shopify_client import ShopifyAdminClient
from metafield_sync.models.config import AppConfig
from metafield_sync.sync.service import SyncService

log = structlog.stdlib.get_logger()

INVENTORY_LEVELS_UPDATE_TOPICS = {"inventory_levels/update", "inventory_levels_update"}


def create_app(config: AppConfig, service: SyncService | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Application configuration; its shop is the only accepted session
        service: Optional pre-built service (a Shopify client is created otherwise)

    Returns:
        Configured FastAPI application
    """
    client: ShopifyAdminClient | None = None
    if service is None:
        client = ShopifyAdminClient(config.shopify, config.sync)
        service = SyncService(client, config.sync)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        if client is not None:
            await client.aclose()

    app = FastAPI(title="metafield-sync", lifespan=lifespan)
    app.state.service = service
    shop_domain = config.shopify.shop_domain.lower()

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/sync")
    async def start_sync(request: Request) -> JSONResponse:
        result = request.app.state.service.start()
        status_code = 500 if result.error else 200
        return JSONResponse(result.model_dump(mode="json"), status_code=status_code)

    @app.get("/sync/progress")
    async def sync_progress(request: Request) -> JSONResponse:
        status = request.app.state.service.status()
        return JSONResponse(status.model_dump(mode="json"))

    @app.post("/webhooks/inventory_levels/update")
    async def inventory_levels_update(
        request: Request,
        x_shopify_shop_domain: str | None = Header(default=None),
        x_shopify_topic: str | None = Header(default=None),
    ) -> Response:
        if not x_shopify_shop_domain or x_shopify_shop_domain.lower() != shop_domain:
            log.error(
                "webhook_session_missing",
                shop_domain=x_shopify_shop_domain,
                hint="The shop may need to re-authenticate.",
            )
            return PlainTextResponse("Unauthorized", status_code=401)

        try:
            payload = await request.json()
            log.info("webhook_received", topic=x_shopify_topic, payload=payload)

            if (x_shopify_topic or "").lower() in INVENTORY_LEVELS_UPDATE_TOPICS:
                await request.app.state.service.handle_inventory_update(payload)
            else:
                log.info("webhook_topic_ignored", topic=x_shopify_topic)
        except Exception as e:
            log.exception("webhook_processing_failed", error=str(e))
            return PlainTextResponse("Error processing webhook", status_code=500)

        return Response(status_code=200)

    return app
