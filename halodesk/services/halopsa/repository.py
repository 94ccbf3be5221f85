"""Generic list/get/create/update/delete over a HaloPSA collection endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Mapping, Sequence, TypeVar

from halodesk.services.halopsa.client import HaloPSAClient, QueryParams

T = TypeVar("T")

RawRecord = Mapping[str, Any]
Transform = Callable[[RawRecord], T]


class ResponseShape(str, Enum):
    """Known layouts of a HaloPSA list response."""

    BARE = "bare"
    RECORDS = "records"
    TICKETS = "tickets"
    CLIENTS = "clients"
    ACTIONS = "actions"
    AGENTS = "agents"
    SITES = "sites"
    USERS = "users"
    UNRECOGNISED = "unrecognised"


# Checked in order; the first key holding a list wins.
_WRAPPER_KEYS: tuple[ResponseShape, ...] = (
    ResponseShape.RECORDS,
    ResponseShape.TICKETS,
    ResponseShape.CLIENTS,
    ResponseShape.ACTIONS,
    ResponseShape.AGENTS,
    ResponseShape.SITES,
    ResponseShape.USERS,
)


def classify_response(payload: Any) -> tuple[ResponseShape, list[Any]]:
    if isinstance(payload, list):
        return ResponseShape.BARE, payload
    if isinstance(payload, Mapping):
        for shape in _WRAPPER_KEYS:
            nested = payload.get(shape.value)
            if isinstance(nested, list):
                return shape, nested
    return ResponseShape.UNRECOGNISED, []


@dataclass(frozen=True, slots=True)
class EntityRepository(Generic[T]):
    """CRUD access to one remote collection.

    ``transform`` maps a single raw record to the entity type; every concrete
    repository is just an endpoint paired with its mapping function.
    """

    client: HaloPSAClient
    endpoint: str
    transform: Transform[T]

    def parse_list(self, payload: Any) -> list[T]:
        _shape, items = classify_response(payload)
        return [self.transform(item) for item in items if isinstance(item, Mapping)]

    async def list(self, params: QueryParams | None = None) -> list[T]:
        payload = await self.client.get(self.endpoint, params)
        return self.parse_list(payload)

    async def get(self, entity_id: int, params: QueryParams | None = None) -> T:
        payload = await self.client.get(f"{self.endpoint}/{entity_id}", params)
        return self.transform(payload)

    async def create(self, items: Sequence[Mapping[str, Any]]) -> list[T]:
        payload = await self.client.post(self.endpoint, [dict(item) for item in items])
        return self.parse_list(payload)

    async def update(self, items: Sequence[Mapping[str, Any]]) -> list[T]:
        # HaloPSA treats items carrying an ``id`` as updates on the same endpoint.
        payload = await self.client.post(self.endpoint, [dict(item) for item in items])
        return self.parse_list(payload)

    async def delete(self, entity_id: int) -> None:
        await self.client.delete(f"{self.endpoint}/{entity_id}")
