from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from app.clients.backend import BackendClient
from app.schemas.invoice import InvoiceData, invoice_from_record, invoice_to_record
from app.services.exceptions import NotFoundError, ServiceError
from app.services.mock_store import InvoiceRepository, get_mock_store

logger = logging.getLogger(__name__)

INVOICES_PATH = "/invoices"

# Changing either of these invalidates the stored totals.
_TOTALS_INPUTS = ("items", "tax_rate")


def _first_row(data: Any) -> Dict[str, Any]:
    if isinstance(data, list):
        if not data:
            raise ServiceError("Backend returned no rows")
        return data[0]
    return data


class InvoiceService:
    """Persistence collaborator for invoice records."""

    def __init__(
        self,
        client: BackendClient,
        *,
        repository: InvoiceRepository | None = None,
    ) -> None:
        self._client = client
        self._repository = repository
        if self._client.use_mock_data:
            self._repository = repository or get_mock_store().invoices

    def _require_repository(self) -> InvoiceRepository:
        if self._repository is None:
            raise RuntimeError("Mock invoice repository not configured")
        return self._repository

    async def create(self, invoice: InvoiceData) -> InvoiceData:
        logger.debug("Creating invoice %s", invoice.invoice_number)
        record = invoice_to_record(invoice)
        record.pop("id", None)
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            stored = await self._require_repository().create(record)
            return invoice_from_record(stored)

        try:
            data = await self._client.post(INVOICES_PATH, record)
            return invoice_from_record(_first_row(data))
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Unexpected error while creating invoice")
            raise ServiceError("Failed to create invoice", cause=exc)

    async def update(
        self, invoice_id: str, changes: InvoiceData | Mapping[str, Any]
    ) -> InvoiceData:
        """Apply a full invoice or a partial snake_case record to a stored invoice."""

        logger.debug("Updating invoice %s", invoice_id)
        partial = not isinstance(changes, InvoiceData)
        payload = dict(changes) if partial else invoice_to_record(changes)
        for key in ("id", "created_at"):
            payload.pop(key, None)

        if partial and any(key in payload for key in _TOTALS_INPUTS):
            current = await self.get(invoice_id)
            merged = {**invoice_to_record(current), **payload}
            payload = invoice_to_record(invoice_from_record(merged))
            for key in ("id", "created_at"):
                payload.pop(key, None)

        if self._client.use_mock_data:
            await self._client.simulate_latency()
            try:
                stored = await self._require_repository().update(invoice_id, payload)
            except KeyError as exc:
                raise NotFoundError(f"Invoice {invoice_id} not found", cause=exc) from exc
            return invoice_from_record(stored)

        payload["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            data = await self._client.patch(
                INVOICES_PATH, payload, params={"id": f"eq.{invoice_id}"}
            )
            if not data:
                raise NotFoundError(f"Invoice {invoice_id} not found")
            return invoice_from_record(_first_row(data))
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Unexpected error while updating invoice")
            raise ServiceError("Failed to update invoice", cause=exc)

    async def save(self, invoice: InvoiceData) -> InvoiceData:
        """Insert a new invoice or update the stored one it was loaded from."""

        if invoice.id:
            return await self.update(invoice.id, invoice)
        return await self.create(invoice)

    async def get(self, invoice_id: str) -> InvoiceData:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            stored = await self._require_repository().get(invoice_id)
            if stored is None:
                raise NotFoundError(f"Invoice {invoice_id} not found")
            return invoice_from_record(stored)

        try:
            data = await self._client.get(
                INVOICES_PATH, {"select": "*", "id": f"eq.{invoice_id}"}
            )
            if not data:
                raise NotFoundError(f"Invoice {invoice_id} not found")
            return invoice_from_record(_first_row(data))
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Unexpected error while loading invoice")
            raise ServiceError("Failed to load invoice", cause=exc)

    async def list(self) -> List[InvoiceData]:
        logger.info("Listing invoices")
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            records = await self._require_repository().list()
            return [invoice_from_record(record) for record in records]

        try:
            data = await self._client.get(
                INVOICES_PATH, {"select": "*", "order": "created_at.desc"}
            )
            return [invoice_from_record(record) for record in data or []]
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Unexpected error while listing invoices")
            raise ServiceError("Failed to list invoices", cause=exc)

    async def delete(self, invoice_id: str) -> None:
        logger.info("Deleting invoice %s", invoice_id)
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not await self._require_repository().delete(invoice_id):
                raise NotFoundError(f"Invoice {invoice_id} not found")
            return

        try:
            await self._client.delete(INVOICES_PATH, params={"id": f"eq.{invoice_id}"})
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Unexpected error while deleting invoice")
            raise ServiceError("Failed to delete invoice", cause=exc)
