import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.config import settings
from backend.app.routers import auth as auth_router
from backend.app.routers import dashboard as dashboard_router
from backend.app.routers import migrations as migrations_router
from backend.app.services import registry

# Configure migration loggers; every migrations.* logger inherits this
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s  %(message)s",
    datefmt="%H:%M:%S",
)
logging.getLogger("migrations").setLevel(logging.DEBUG)

log = logging.getLogger("migrations.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("Migration dashboard API starting")
    yield
    registry.clear()
    log.info("Migration dashboard API stopped")


app = FastAPI(title="Code Migration Dashboard API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router.router, prefix="/api/auth", tags=["auth"])
app.include_router(migrations_router.router, prefix="/api", tags=["migrations"])
app.include_router(dashboard_router.router, prefix="/api", tags=["dashboard"])
