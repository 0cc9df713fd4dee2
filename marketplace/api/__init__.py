# marketplace/api/__init__.py
from fastapi import FastAPI

from marketplace.api.routers import carts, catalog, checkout, dispatch, health, orders, riders


def create_app() -> FastAPI:
    app = FastAPI(
        title="Marketplace Cart & Fulfillment Service",
        version="1.0.0",
    )

    app.include_router(health.router)
    app.include_router(catalog.router)
    app.include_router(carts.router)
    app.include_router(checkout.router)
    app.include_router(orders.router)
    app.include_router(riders.router)
    app.include_router(dispatch.router)

    return app
