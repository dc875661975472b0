import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.api.v1 import auth, user
from app.core.config import settings
from app.core.errors import register_error_handlers
from app.core.logging import setup_logging
from app.core.media import configure_cloudinary
from app.db.init_db import init_db
from app.db.session import engine, ensure_database
from app.routers import post

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    if settings.JWT_SECRET == "supersecretkey":
        logger.warning("JWT_SECRET is not set; using the insecure development default")
    if settings.DB_AUTO_CREATE:
        ensure_database()
    init_db(engine)
    configure_cloudinary()
    logger.info("Database schema and views ready")
    yield
    engine.dispose()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
register_error_handlers(app)

app.include_router(auth.router, prefix="/api/users", tags=["Auth"])
app.include_router(user.router, prefix="/api/users", tags=["Users"])
app.include_router(post.router, prefix="/api/posts", tags=["Posts"])
