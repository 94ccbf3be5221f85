import os
import sys
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("HALO_BASE_URL", "https://halo.example.com")
os.environ.setdefault("HALO_CLIENT_ID", "test-client")
os.environ.setdefault("HALO_CLIENT_SECRET", "test-secret")
os.environ.setdefault("HALO_CLOSED_STATUS_ID", "9")

from halodesk.services.halopsa.errors import NotFoundError  # noqa: E402


class StubHaloClient:
    """Stands in for HaloPSAClient, answering from per-endpoint tables.

    Table values may be a payload, an exception to raise, or a callable taking
    the query params (GET/DELETE) or request body (POST) and returning either.
    Endpoints missing from a table raise ``NotFoundError``.
    """

    def __init__(self) -> None:
        self.get_responses: dict[str, Any] = {}
        self.post_responses: dict[str, Any] = {}
        self.delete_responses: dict[str, Any] = {}
        self.calls: list[tuple[str, str, Any]] = []

    @staticmethod
    def _resolve(table: dict[str, Any], endpoint: str, argument: Any) -> Any:
        if endpoint not in table:
            raise NotFoundError(endpoint)
        value = table[endpoint]
        if callable(value):
            value = value(argument)
        if isinstance(value, Exception):
            raise value
        return value

    async def get(self, endpoint: str, params=None):
        self.calls.append(("GET", endpoint, params))
        return self._resolve(self.get_responses, endpoint, params)

    async def post(self, endpoint: str, data=None, params=None):
        self.calls.append(("POST", endpoint, data))
        return self._resolve(self.post_responses, endpoint, data)

    async def delete(self, endpoint: str, params=None):
        self.calls.append(("DELETE", endpoint, params))
        return self._resolve(self.delete_responses, endpoint, params)

    def posts_to(self, endpoint: str) -> list[Any]:
        return [body for method, path, body in self.calls if method == "POST" and path == endpoint]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def stub_client() -> StubHaloClient:
    return StubHaloClient()
