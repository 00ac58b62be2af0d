import os

os.environ.setdefault("STAFFBASE_BASE_URL", "https://staffbase.test/api")
os.environ.setdefault("STAFFBASE_TOKEN", "test-token")
os.environ.setdefault("STAFFBASE_SPACE_ID", "space-1")
os.environ.setdefault("HIDDEN_ATTRIBUTE_KEY", "storeid")

import copy  # noqa: E402
import inspect  # noqa: E402
import re  # noqa: E402

import pytest  # noqa: E402

from storecast.services.staffbase.client import StaffbaseClient  # noqa: E402


class FakeStaffbaseClient:
    """In-memory stand-in for StaffbaseClient with routable responses."""

    iter_pages = StaffbaseClient.iter_pages

    def __init__(self):
        self.calls: list[tuple[str, str, object, dict | None]] = []
        self._routes: list[tuple[str, re.Pattern, object]] = []
        self.closed = False

    def on(self, method: str, path: str, handler) -> None:
        """
        Register a response for ``method`` and a full-match path regex.
        ``handler`` is a dict, an exception instance, or a (sync/async)
        callable receiving ``path``, ``json`` and ``params``.
        """
        self._routes.append((method, re.compile(path), handler))

    async def _dispatch(self, method: str, path: str, json=None, params=None):
        self.calls.append((method, path, json, params))
        for route_method, pattern, handler in self._routes:
            if route_method != method or not pattern.fullmatch(path):
                continue
            if isinstance(handler, Exception):
                raise handler
            if callable(handler):
                result = handler(path=path, json=json, params=params)
                if inspect.isawaitable(result):
                    result = await result
                return result
            return copy.deepcopy(handler)
        raise AssertionError(f"Unexpected request {method} {path}")

    async def request(self, method: str, path: str, json=None, params=None) -> dict:
        return await self._dispatch(method, path, json=json, params=params)

    async def upload(self, path: str, content: bytes, filename: str, content_type: str = "text/csv") -> dict:
        return await self._dispatch("UPLOAD", path, json={"filename": filename, "size": len(content)})

    async def close(self) -> None:
        self.closed = True

    async def health_check(self) -> dict:
        return {"healthy": True, "service": "staffbase"}

    def calls_to(self, method: str, path_regex: str) -> list[tuple]:
        pattern = re.compile(path_regex)
        return [call for call in self.calls if call[0] == method and pattern.fullmatch(call[1])]


def paged(rows: list[dict]):
    """Handler serving ``rows`` through limit/offset query parameters."""

    def _handler(path, json, params):
        offset = int(params["offset"])
        limit = int(params["limit"])
        return {"data": copy.deepcopy(rows[offset : offset + limit])}

    return _handler


def make_user(user_id: str, store_id: str | None, first: str = "", last: str = "") -> dict:
    profile = {"storeid": store_id} if store_id is not None else {}
    return {"id": user_id, "firstName": first, "lastName": last, "profile": profile}


def make_installation(
    installation_id: str,
    title: str,
    plugin_id: str = "news",
    external_id: str | None = None,
    accessors: list[str] | None = None,
    created_at: str = "2024-01-01T00:00:00Z",
) -> dict:
    installation = {
        "id": installation_id,
        "pluginID": plugin_id,
        "config": {"localization": {"en_US": {"title": title}, "de_DE": {"title": title}}},
        "accessorIDs": accessors or [],
        "createdAt": created_at,
    }
    if external_id is not None:
        installation["externalID"] = external_id
    return installation


@pytest.fixture
def fake_staffbase():
    return FakeStaffbaseClient()


@pytest.fixture
def paged_rows():
    return paged


@pytest.fixture
def user_factory():
    return make_user


@pytest.fixture
def installation_factory():
    return make_installation
