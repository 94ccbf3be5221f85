from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from halodesk.api.dependencies.halopsa import get_halo_client, get_ticket_repository
from halodesk.core.config import get_settings
from halodesk.schemas.halopsa import (
    ConnectionTestResponse,
    DuplicateCandidateResponse,
    TicketMergeRequest,
    TicketMergeResponse,
    TicketStatsResponse,
)
from halodesk.services.halopsa import duplicates as duplicate_service
from halodesk.services.halopsa import merge as merge_service
from halodesk.services.halopsa import tickets as ticket_ops
from halodesk.services.halopsa.client import HaloPSAClient
from halodesk.services.halopsa.entities import Ticket
from halodesk.services.halopsa.repository import EntityRepository


router = APIRouter(prefix="/api/halopsa", tags=["HaloPSA"])


@router.get("/test-connection", response_model=ConnectionTestResponse)
async def test_connection(client: HaloPSAClient = Depends(get_halo_client)):
    await client.test_connection()
    return ConnectionTestResponse(success=True, message="Connected to HaloPSA")


@router.post("/reconnect", response_model=ConnectionTestResponse)
async def reconnect(client: HaloPSAClient = Depends(get_halo_client)):
    """Drop the cached token and prove the credentials still work."""
    client.clear_token()
    await client.test_connection()
    return ConnectionTestResponse(success=True, message="Reconnected to HaloPSA")


@router.get(
    "/tickets/stats",
    response_model=TicketStatsResponse,
)
async def ticket_stats(
    client_id: Optional[int] = Query(default=None, ge=1),
    agent_id: Optional[int] = Query(default=None, ge=1),
    tickets: EntityRepository[Ticket] = Depends(get_ticket_repository),
):
    stats = await ticket_ops.get_summary_stats(tickets, client_id=client_id, agent_id=agent_id)
    return TicketStatsResponse.model_validate(stats)


@router.get(
    "/tickets/{ticket_id}/duplicates",
    response_model=list[DuplicateCandidateResponse],
)
async def ticket_duplicates(
    ticket_id: int,
    hours_lookback: Optional[int] = Query(default=None, ge=1, le=24 * 90),
    threshold: Optional[float] = Query(default=None, ge=0.0, le=1.0),
    tickets: EntityRepository[Ticket] = Depends(get_ticket_repository),
):
    settings = get_settings()
    candidates = await duplicate_service.find_duplicates(
        tickets,
        ticket_id,
        hours_lookback=hours_lookback or settings.duplicate_lookback_hours,
        similarity_threshold=(
            threshold if threshold is not None else settings.duplicate_similarity_threshold
        ),
    )
    return [DuplicateCandidateResponse.model_validate(candidate) for candidate in candidates]


@router.post("/tickets/merge", response_model=TicketMergeResponse)
async def merge_tickets(
    payload: TicketMergeRequest,
    tickets: EntityRepository[Ticket] = Depends(get_ticket_repository),
):
    """
    Merge secondary tickets into a primary ticket.

    The response is returned even when some secondaries fail; failures are
    listed in ``errors``.
    """
    result = await merge_service.merge_tickets(
        tickets,
        payload.primary_ticket_id,
        payload.secondary_ticket_ids,
        payload.merge_note,
    )
    return TicketMergeResponse.model_validate(result)
