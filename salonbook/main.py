# salonbook/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from salonbook import config
from salonbook.db import init_db
from salonbook.routers import (
    appointments_routes,
    auth_routes,
    services_routes,
    staff_routes,
    users_routes,
)

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database ready at %s", config.DATABASE_URL)
    yield


app = FastAPI(title="salonbook", lifespan=lifespan)

app.include_router(auth_routes.router)
app.include_router(users_routes.router)
app.include_router(staff_routes.router)
app.include_router(services_routes.router)
app.include_router(appointments_routes.router)
app.include_router(appointments_routes.bookings_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
