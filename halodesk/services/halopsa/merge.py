from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from halodesk.core.logging import log_info, log_warning
from halodesk.services.halopsa import tickets as ticket_ops
from halodesk.services.halopsa.entities import Action, Ticket
from halodesk.services.halopsa.errors import ValidationError
from halodesk.services.halopsa.repository import EntityRepository

MERGE_HEADER = "--- TICKET MERGE ---"


@dataclass(slots=True)
class MergedTicket:
    id: int
    summary: str
    actions_copied: int


@dataclass(slots=True)
class MergeError:
    ticket_id: int
    error: str


@dataclass(slots=True)
class MergeResult:
    primary_ticket_id: int
    merged_tickets: list[MergedTicket] = field(default_factory=list)
    actions_copied: int = 0
    errors: list[MergeError] = field(default_factory=list)


def _validate_secondaries(primary_ticket_id: int, secondary_ticket_ids: Sequence[int]) -> list[int]:
    errors: list[str] = []
    if not secondary_ticket_ids:
        errors.append("At least one secondary ticket is required")
    if primary_ticket_id in secondary_ticket_ids:
        errors.append(f"Primary ticket #{primary_ticket_id} cannot also be merged as a secondary")
    if errors:
        raise ValidationError("Invalid merge request", {"secondary_ticket_ids": errors})
    return list(dict.fromkeys(secondary_ticket_ids))


def default_merge_note(secondary_ticket_ids: Sequence[int]) -> str:
    return "Merged tickets: " + ", ".join(f"#{ticket_id}" for ticket_id in secondary_ticket_ids)


def format_copied_note(secondary_ticket_id: int, action: Action) -> str:
    return (
        f"[Merged from Ticket #{secondary_ticket_id}]\n"
        f"Original author: {action.who or 'Unknown'}\n"
        f"Original time: {action.action_time or 'Unknown'}\n\n"
        f"{action.note}"
    )


def format_close_note(primary_ticket_id: int) -> str:
    return (
        f"This ticket has been merged into Ticket #{primary_ticket_id}.\n"
        "All notes and attachments have been copied to the primary ticket."
    )


async def _merge_secondary(
    tickets: EntityRepository[Ticket],
    primary_ticket_id: int,
    secondary_ticket_id: int,
    result: MergeResult,
) -> MergedTicket:
    secondary = await ticket_ops.get_with_actions(tickets, secondary_ticket_id)
    copied = 0
    for action in secondary.actions:
        if not action.note:
            continue
        await ticket_ops.add_action(
            tickets,
            primary_ticket_id,
            format_copied_note(secondary_ticket_id, action),
            hidden_from_user=action.hidden_from_user,
        )
        copied += 1
        result.actions_copied += 1
    await ticket_ops.close(tickets, secondary_ticket_id, format_close_note(primary_ticket_id))
    return MergedTicket(id=secondary_ticket_id, summary=secondary.summary, actions_copied=copied)


async def merge_tickets(
    tickets: EntityRepository[Ticket],
    primary_ticket_id: int,
    secondary_ticket_ids: Sequence[int],
    merge_note: str | None = None,
) -> MergeResult:
    """Fold secondary tickets into the primary ticket.

    Notes are copied and secondaries closed one ticket at a time, in the order
    given. A failure on one secondary is recorded in ``MergeResult.errors`` and
    the next secondary is still processed. Work already done is never undone,
    so a partially failed merge leaves earlier notes and closures in place.
    Failing to load the primary ticket aborts the merge.
    """

    secondaries = _validate_secondaries(primary_ticket_id, secondary_ticket_ids)
    result = MergeResult(primary_ticket_id=primary_ticket_id)
    log_info("Merging HaloPSA tickets", primary=primary_ticket_id, secondaries=secondaries)

    await ticket_ops.get_with_actions(tickets, primary_ticket_id)
    note = merge_note or default_merge_note(secondaries)
    await ticket_ops.add_action(
        tickets,
        primary_ticket_id,
        f"{MERGE_HEADER}\n{note}",
        hidden_from_user=False,
    )

    for secondary_ticket_id in secondaries:
        try:
            merged = await _merge_secondary(tickets, primary_ticket_id, secondary_ticket_id, result)
        except Exception as exc:
            log_warning(
                "Failed to merge HaloPSA ticket",
                primary=primary_ticket_id,
                ticket_id=secondary_ticket_id,
                error=str(exc),
            )
            result.errors.append(MergeError(ticket_id=secondary_ticket_id, error=str(exc)))
            continue
        result.merged_tickets.append(merged)

    log_info(
        "HaloPSA merge complete",
        primary=primary_ticket_id,
        merged=len(result.merged_tickets),
        failed=len(result.errors),
        actions_copied=result.actions_copied,
    )
    return result
