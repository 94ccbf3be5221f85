from __future__ import annotations

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ConnectionTestResponse(BaseModel):
    success: bool
    message: Optional[str] = None


class DuplicateCandidateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ticket_id: int
    summary: str
    status: Optional[str] = None
    created: Optional[str] = None
    similarity_score: float = Field(ge=0.0, le=1.0)
    matching_words: List[str] = Field(default_factory=list)


class TicketMergeRequest(BaseModel):
    primary_ticket_id: int = Field(
        ..., ge=1, validation_alias=AliasChoices("primary_ticket_id", "primaryTicketId")
    )
    secondary_ticket_ids: List[int] = Field(
        ...,
        validation_alias=AliasChoices("secondary_ticket_ids", "secondaryTicketIds"),
    )
    merge_note: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("merge_note", "mergeNote")
    )

    model_config = ConfigDict(populate_by_name=True)


class MergedTicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    summary: str
    actions_copied: int


class MergeErrorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ticket_id: int
    error: str


class TicketMergeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    primary_ticket_id: int
    merged_tickets: List[MergedTicketResponse] = Field(default_factory=list)
    actions_copied: int = 0
    errors: List[MergeErrorResponse] = Field(default_factory=list)


class TicketStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    open: int
    closed: int
    sla_breached: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
    by_agent: dict[str, int]
    by_client: dict[str, int]
