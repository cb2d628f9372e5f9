from __future__ import annotations

import logging
from typing import List

from app.clients.backend import BackendClient
from app.schemas.catalog import CourseSummary, StudentSummary
from app.services.exceptions import ServiceError
from app.services.mock_store import CatalogRepository, get_mock_store

logger = logging.getLogger(__name__)


class CatalogService:
    """Read-only course and student lookups used to pre-fill invoices."""

    def __init__(
        self,
        client: BackendClient,
        *,
        repository: CatalogRepository | None = None,
    ) -> None:
        self._client = client
        self._repository = repository
        if self._client.use_mock_data:
            self._repository = repository or get_mock_store().catalog

    async def list_courses(self) -> List[CourseSummary]:
        logger.debug("Loading published courses")
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if self._repository is None:
                raise RuntimeError("Mock catalog repository not configured")
            return await self._repository.list_courses()

        try:
            data = await self._client.get(
                "/courses", {"select": "id,title,price", "status": "eq.published"}
            )
            return [CourseSummary(**row) for row in data or []]
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Unexpected error while loading courses")
            raise ServiceError("Failed to load courses", cause=exc)

    async def list_students(self) -> List[StudentSummary]:
        logger.debug("Loading students")
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if self._repository is None:
                raise RuntimeError("Mock catalog repository not configured")
            return await self._repository.list_students()

        try:
            data = await self._client.get(
                "/profiles", {"select": "id,email,full_name,phone", "role": "eq.student"}
            )
            return [StudentSummary(**row) for row in data or []]
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Unexpected error while loading students")
            raise ServiceError("Failed to load students", cause=exc)
