from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from app.clients.backend import BackendClient
from app.config import Settings, get_settings
from app.services import CatalogService, InvoiceService
from app.services.workspaces import WorkspaceStore, get_workspace_store


@lru_cache(maxsize=1)
def get_backend_client_cached() -> BackendClient:
    settings = get_settings()
    return BackendClient(
        settings.backend_base_url,
        timeout=settings.backend_timeout,
        use_mock_data=settings.use_mock_data,
        api_key=settings.backend_api_key,
    )


def get_backend_client(settings: Settings = Depends(get_settings)) -> BackendClient:
    return get_backend_client_cached()


def get_invoice_service(
    client: BackendClient = Depends(get_backend_client),
) -> InvoiceService:
    return InvoiceService(client)


def get_catalog_service(
    client: BackendClient = Depends(get_backend_client),
) -> CatalogService:
    return CatalogService(client)


def get_workspaces(settings: Settings = Depends(get_settings)) -> WorkspaceStore:
    return get_workspace_store(settings)
