from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from halodesk.services.halopsa.client import HaloPSAClient, create_halo_client
from halodesk.services.halopsa.entities import Ticket, ticket_repository
from halodesk.services.halopsa.repository import EntityRepository


@lru_cache
def _configured_client() -> HaloPSAClient:
    return create_halo_client()


def get_halo_client() -> HaloPSAClient:
    """Return the process-wide client for the configured HaloPSA connection."""

    return _configured_client()


def get_ticket_repository(
    client: HaloPSAClient = Depends(get_halo_client),
) -> EntityRepository[Ticket]:
    return ticket_repository(client)
