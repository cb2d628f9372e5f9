from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.dependencies.services import get_backend_client_cached
from app.routes.catalog import router as catalog_router
from app.routes.health import router as health_router
from app.routes.invoices import router as invoices_router
from app.routes.workspaces import router as workspaces_router
from app.services.workspaces import reset_workspace_store


def configure_logging() -> None:
    """Ensure application logs use the INFO level by default."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    else:
        root_logger.setLevel(logging.INFO)

# Configure logging as soon as the module is loaded
configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manages application startup and shutdown events.
    """
    settings = get_settings()

    settings_snapshot = settings.model_dump(exclude={"backend_api_key"})
    logger.info("Application settings on startup: %s", settings_snapshot)

    client = get_backend_client_cached()
    logger.info("Application startup complete.")

    try:
        yield
    finally:
        logger.info("Revoking open invoice previews.")
        reset_workspace_store()
        logger.info("Closing backend client connection.")
        await client.close()
        logger.info("Application shutdown complete.")


settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(catalog_router, prefix="/catalog")
app.include_router(invoices_router, prefix="/invoices")
app.include_router(workspaces_router, prefix="/workspaces")
