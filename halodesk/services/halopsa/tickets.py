from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from halodesk.core.config import get_settings
from halodesk.core.logging import log_info
from halodesk.services.halopsa.entities import (
    Action,
    Ticket,
    action_repository,
    is_sla_breached,
    is_ticket_open,
    transform_action,
)
from halodesk.services.halopsa.errors import APIError
from halodesk.services.halopsa.repository import EntityRepository

TicketRepository = EntityRepository[Ticket]

_UNASSIGNED = "Unassigned"


@dataclass(slots=True)
class TicketStats:
    total: int = 0
    open: int = 0
    closed: int = 0
    sla_breached: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)
    by_agent: dict[str, int] = field(default_factory=dict)
    by_client: dict[str, int] = field(default_factory=dict)


def _with_filters(base: dict[str, Any], **filters: Any) -> dict[str, Any]:
    params = dict(base)
    for key, value in filters.items():
        if value:
            params[key] = value
    return params


async def list_open(
    tickets: TicketRepository,
    *,
    client_id: int | None = None,
    agent_id: int | None = None,
    team_id: int | None = None,
    count: int = 50,
    **extra: Any,
) -> list[Ticket]:
    params = _with_filters(
        {"count": count, "open_only": True, **extra},
        client_id=client_id,
        agent_id=agent_id,
        team_id=team_id,
    )
    return await tickets.list(params)


async def list_closed(
    tickets: TicketRepository,
    *,
    start_date: str | None = None,
    end_date: str | None = None,
    client_id: int | None = None,
    count: int = 50,
    **extra: Any,
) -> list[Ticket]:
    params = _with_filters(
        {"count": count, "closed_only": True, "datesearch": "datecleared", **extra},
        startdate=start_date,
        enddate=end_date,
        client_id=client_id,
    )
    return await tickets.list(params)


async def list_by_status(
    tickets: TicketRepository, status_id: int, count: int = 50, **extra: Any
) -> list[Ticket]:
    return await tickets.list({"status_id": status_id, "count": count, **extra})


async def list_sla_breached(tickets: TicketRepository, count: int = 50, **extra: Any) -> list[Ticket]:
    return await tickets.list({"slabreached": True, "count": count, **extra})


async def list_unassigned(tickets: TicketRepository, count: int = 50, **extra: Any) -> list[Ticket]:
    return await tickets.list({"unassigned": True, "count": count, **extra})


async def search(tickets: TicketRepository, query: str, count: int = 50, **extra: Any) -> list[Ticket]:
    return await tickets.list({"search": query, "count": count, **extra})


async def get_with_actions(tickets: TicketRepository, ticket_id: int) -> Ticket:
    """Fetch a ticket and replace its actions with the full note history."""

    ticket = await tickets.get(ticket_id, {"includedetails": True})
    actions = await action_repository(tickets.client).list(
        {"ticket_id": ticket_id, "excludesys": False}
    )
    ticket.actions = actions
    return ticket


async def add_action(
    tickets: TicketRepository,
    ticket_id: int,
    note: str,
    *,
    outcome_id: int | None = None,
    hidden_from_user: bool = False,
    time_taken: float | None = None,
) -> Action:
    action_data: dict[str, Any] = {
        "ticket_id": ticket_id,
        "note": note,
        "hiddenfromuser": hidden_from_user,
    }
    if outcome_id:
        action_data["outcome_id"] = outcome_id
    if time_taken:
        action_data["timetaken"] = time_taken

    payload = await tickets.client.post("/Actions", [action_data])
    if isinstance(payload, list) and payload and isinstance(payload[0], Mapping):
        return transform_action(payload[0])
    if isinstance(payload, Mapping) and "id" in payload:
        return transform_action(payload)
    raise APIError(
        f"HaloPSA did not return the action created on ticket {ticket_id}",
        response=payload,
    )


async def _update_and_return(tickets: TicketRepository, ticket_id: int, changes: dict[str, Any]) -> Ticket:
    results = await tickets.update([{"id": ticket_id, **changes}])
    if results:
        return results[0]
    return await tickets.get(ticket_id)


async def assign(
    tickets: TicketRepository,
    ticket_id: int,
    *,
    agent_id: int | None = None,
    team_id: int | None = None,
) -> Ticket:
    changes: dict[str, Any] = {}
    if agent_id is not None:
        changes["agent_id"] = agent_id
    if team_id is not None:
        changes["team_id"] = team_id
    return await _update_and_return(tickets, ticket_id, changes)


async def close(
    tickets: TicketRepository,
    ticket_id: int,
    note: str | None = None,
    *,
    status_id: int | None = None,
) -> Ticket:
    if note:
        await add_action(tickets, ticket_id, note)
    closed_status = status_id if status_id is not None else get_settings().halo_closed_status_id
    log_info("Closing HaloPSA ticket", ticket_id=ticket_id, status_id=closed_status)
    return await _update_and_return(tickets, ticket_id, {"status_id": closed_status})


def _group_by(items: Iterable[Ticket], attribute: str) -> dict[str, int]:
    counts: Counter[str] = Counter()
    for ticket in items:
        counts[getattr(ticket, attribute) or _UNASSIGNED] += 1
    return dict(counts)


async def get_summary_stats(
    tickets: TicketRepository,
    *,
    client_id: int | None = None,
    agent_id: int | None = None,
) -> TicketStats:
    params = _with_filters({"count": 1000}, client_id=client_id, agent_id=agent_id)
    all_tickets = await tickets.list(params)
    open_tickets = [ticket for ticket in all_tickets if is_ticket_open(ticket)]
    return TicketStats(
        total=len(all_tickets),
        open=len(open_tickets),
        closed=len(all_tickets) - len(open_tickets),
        sla_breached=sum(1 for ticket in open_tickets if is_sla_breached(ticket)),
        by_status=_group_by(all_tickets, "status_name"),
        by_priority=_group_by(all_tickets, "priority_name"),
        by_agent=_group_by(open_tickets, "agent_name"),
        by_client=_group_by(all_tickets, "client_name"),
    )
