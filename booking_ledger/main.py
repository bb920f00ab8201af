from fastapi import FastAPI
from tortoise.contrib.fastapi import register_tortoise

from booking_ledger import settings
from booking_ledger.routers import auth, orders, resources

TORTOISE_MODULES = {"models": ["booking_ledger.models"]}


def create_app() -> FastAPI:
    app = FastAPI(title="booking-ledger")
    app.include_router(auth.router)
    app.include_router(orders.router)
    app.include_router(resources.router)

    register_tortoise(
        app,
        db_url=settings.db_url,
        modules=TORTOISE_MODULES,
        generate_schemas=True,
        add_exception_handlers=True,
    )
    return app


app = create_app()
