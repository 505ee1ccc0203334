from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from services.identity_management.api.auth_router import router as auth_router
from services.identity_management.controllers.identity_registry import IdentityRegistry
from shared.app_logger import setup_logging
from shared.config import get_settings
from shared.db import SessionLocal, engine
from shared.errors import register_exception_handlers

settings = get_settings()
logger = setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.ensure_secure()
    app.state.registry = IdentityRegistry(settings, SessionLocal)
    logger.info("SchoolMate identity service started (env=%s)", settings.environment)
    yield
    await engine.dispose()


app = FastAPI(title="SchoolMate AI Backend", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app, debug=settings.debug)


@app.get("/")
def health_check():
    return {"status": "SchoolMate AI Backend is running ✅"}


app.include_router(auth_router)
