from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from halodesk.services.halopsa.client import HaloPSAClient
from halodesk.services.halopsa.repository import EntityRepository

_SLA_BREACHED_VALUES = (2, "2", "B", "b")


@dataclass(slots=True)
class Action:
    id: int
    hidden_from_user: bool = False
    ticket_id: int | None = None
    note: str | None = None
    who: str | None = None
    who_type: int | None = None
    outcome: str | None = None
    outcome_id: int | None = None
    action_time: str | None = None
    time_taken: float | None = None


@dataclass(slots=True)
class Ticket:
    id: int
    summary: str = ""
    details: str | None = None
    ticket_type_id: int | None = None
    ticket_type_name: str | None = None
    category1: str | None = None
    category2: str | None = None
    category3: str | None = None
    status_id: int | None = None
    status_name: str | None = None
    priority_id: int | None = None
    priority_name: str | None = None
    client_id: int | None = None
    client_name: str | None = None
    site_id: int | None = None
    site_name: str | None = None
    user_id: int | None = None
    user_name: str | None = None
    agent_id: int | None = None
    agent_name: str | None = None
    team_id: int | None = None
    team_name: str | None = None
    date_created: str | None = None
    date_closed: str | None = None
    due_date: str | None = None
    sla_response_state: int | str | None = None
    sla_fix_state: int | str | None = None
    actions: list[Action] = field(default_factory=list)


@dataclass(slots=True)
class Client:
    id: int
    name: str = ""
    toplevel_name: str | None = None
    inactive: bool = False


@dataclass(slots=True)
class Agent:
    id: int
    name: str = ""
    email: str | None = None
    team: str | None = None
    inactive: bool = False


@dataclass(slots=True)
class Site:
    id: int
    name: str = ""
    client_id: int | None = None
    client_name: str | None = None


@dataclass(slots=True)
class User:
    id: int
    name: str = ""
    email: str | None = None
    client_id: int | None = None
    site_id: int | None = None
    inactive: bool = False


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


def transform_action(data: Mapping[str, Any]) -> Action:
    return Action(
        id=data["id"],
        ticket_id=data.get("ticket_id"),
        note=data.get("note"),
        who=data.get("who"),
        who_type=data.get("whotype"),
        outcome=data.get("outcome"),
        outcome_id=data.get("outcome_id"),
        action_time=_text(data.get("actiontime")),
        time_taken=data.get("timetaken"),
        hidden_from_user=bool(data.get("hiddenfromuser") or False),
    )


def transform_ticket(data: Mapping[str, Any]) -> Ticket:
    raw_actions = data.get("actions") or []
    return Ticket(
        id=data["id"],
        summary=data.get("summary") or "",
        details=data.get("details"),
        ticket_type_id=data.get("tickettype_id"),
        ticket_type_name=data.get("tickettype_name"),
        category1=data.get("category_1"),
        category2=data.get("category_2"),
        category3=data.get("category_3"),
        status_id=data.get("status_id"),
        status_name=data.get("status_name"),
        priority_id=data.get("priority_id"),
        priority_name=data.get("priority_name"),
        client_id=data.get("client_id"),
        client_name=data.get("client_name"),
        site_id=data.get("site_id"),
        site_name=data.get("site_name"),
        user_id=data.get("user_id"),
        user_name=data.get("user_name"),
        agent_id=data.get("agent_id"),
        agent_name=data.get("agent_name"),
        team_id=data.get("team_id"),
        team_name=data.get("team"),
        date_created=_text(data.get("datecreated")),
        date_closed=_text(data.get("dateclosed")),
        due_date=_text(data.get("duedate")),
        sla_response_state=data.get("slaresponsestate"),
        sla_fix_state=data.get("slafixstate"),
        actions=[transform_action(item) for item in raw_actions if isinstance(item, Mapping)],
    )


def transform_client(data: Mapping[str, Any]) -> Client:
    return Client(
        id=data["id"],
        name=data.get("name") or "",
        toplevel_name=data.get("toplevel_name"),
        inactive=bool(data.get("inactive") or False),
    )


def transform_agent(data: Mapping[str, Any]) -> Agent:
    return Agent(
        id=data["id"],
        name=data.get("name") or "",
        email=data.get("email"),
        team=data.get("team"),
        inactive=bool(data.get("inactive") or False),
    )


def transform_site(data: Mapping[str, Any]) -> Site:
    return Site(
        id=data["id"],
        name=data.get("name") or "",
        client_id=data.get("client_id"),
        client_name=data.get("client_name"),
    )


def transform_user(data: Mapping[str, Any]) -> User:
    return User(
        id=data["id"],
        name=data.get("name") or "",
        email=data.get("emailaddress"),
        client_id=data.get("client_id"),
        site_id=data.get("site_id"),
        inactive=bool(data.get("inactive") or False),
    )


def is_ticket_open(ticket: Ticket) -> bool:
    return ticket.date_closed is None


def is_sla_breached(ticket: Ticket) -> bool:
    return (
        ticket.sla_response_state in _SLA_BREACHED_VALUES
        or ticket.sla_fix_state in _SLA_BREACHED_VALUES
    )


def ticket_repository(client: HaloPSAClient) -> EntityRepository[Ticket]:
    return EntityRepository(client, "/Tickets", transform_ticket)


def action_repository(client: HaloPSAClient) -> EntityRepository[Action]:
    return EntityRepository(client, "/Actions", transform_action)


def client_repository(client: HaloPSAClient) -> EntityRepository[Client]:
    return EntityRepository(client, "/Client", transform_client)


def agent_repository(client: HaloPSAClient) -> EntityRepository[Agent]:
    return EntityRepository(client, "/Agent", transform_agent)


def site_repository(client: HaloPSAClient) -> EntityRepository[Site]:
    return EntityRepository(client, "/Site", transform_site)


def user_repository(client: HaloPSAClient) -> EntityRepository[User]:
    return EntityRepository(client, "/Users", transform_user)
