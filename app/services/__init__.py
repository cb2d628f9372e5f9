"""Service package public API definitions.

Service implementations are imported lazily. ``app.clients.backend`` imports
``app.services.exceptions``, which would otherwise execute this module and
pull in the services (which import the client) during start up.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__all__ = [
    "CatalogService",
    "InvoiceService",
]

_SERVICE_MODULES = {
    "CatalogService": "catalog",
    "InvoiceService": "invoice",
}


def __getattr__(name: str) -> Any:
    if name not in _SERVICE_MODULES:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module = import_module(f".{_SERVICE_MODULES[name]}", __name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .catalog import CatalogService as CatalogService
    from .invoice import InvoiceService as InvoiceService
