import httpx
import pytest

from storecast.services.staffbase.client import (
    StaffbaseAPIError,
    StaffbaseClient,
    StaffbaseError,
    StaffbaseTimeoutError,
)

BASE_URL = "https://staffbase.test/api"


def _client():
    return StaffbaseClient(base_url=BASE_URL + "/", token="secret", retry_delay=0)


@pytest.mark.asyncio
async def test_request_sends_basic_auth_and_parses_json(httpx_mock):
    httpx_mock.add_response(method="POST", url=f"{BASE_URL}/channels/c-1/posts", json={"id": "post-1"})
    client = _client()

    data = await client.request("POST", "/channels/c-1/posts", json={"contents": {}})
    await client.close()

    assert data == {"id": "post-1"}
    request = httpx_mock.get_requests()[0]
    assert request.headers["Authorization"] == "Basic secret"
    assert request.headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_request_retries_rate_limit_with_fixed_delay(httpx_mock):
    httpx_mock.add_response(method="GET", url=f"{BASE_URL}/users?limit=1&offset=0", status_code=429)
    httpx_mock.add_response(method="GET", url=f"{BASE_URL}/users?limit=1&offset=0", json={"data": []})
    client = _client()

    data = await client.request("GET", "/users", params={"limit": 1, "offset": 0})
    await client.close()

    assert data == {"data": []}
    assert len(httpx_mock.get_requests()) == 2


@pytest.mark.asyncio
async def test_request_raises_timeout_when_retries_exhausted(httpx_mock):
    for _ in range(3):
        httpx_mock.add_response(method="DELETE", url=f"{BASE_URL}/installations/c-1", status_code=429)
    client = _client()

    with pytest.raises(StaffbaseTimeoutError) as exc:
        await client.request("DELETE", "/installations/c-1")
    await client.close()

    assert str(exc.value) == "API Timeout"
    assert len(httpx_mock.get_requests()) == 3


@pytest.mark.asyncio
async def test_request_does_not_retry_other_errors(httpx_mock):
    httpx_mock.add_response(
        method="POST", url=f"{BASE_URL}/spaces/s/installations", status_code=400, text="bad pluginID"
    )
    client = _client()

    with pytest.raises(StaffbaseAPIError) as exc:
        await client.request("POST", "/spaces/s/installations", json={})
    await client.close()

    assert exc.value.status_code == 400
    assert exc.value.response_body == "bad pluginID"
    assert str(exc.value) == "API 400: bad pluginID"
    assert len(httpx_mock.get_requests()) == 1


@pytest.mark.asyncio
async def test_request_no_content_is_empty_dict(httpx_mock):
    httpx_mock.add_response(method="DELETE", url=f"{BASE_URL}/installations/c-1", status_code=204)
    client = _client()

    assert await client.request("DELETE", "/installations/c-1") == {}
    await client.close()


@pytest.mark.asyncio
async def test_request_wraps_transport_errors(httpx_mock):
    httpx_mock.add_exception(httpx.ConnectError("connection refused"))
    client = _client()

    with pytest.raises(StaffbaseError):
        await client.request("GET", "/users")
    await client.close()


@pytest.mark.asyncio
async def test_upload_posts_multipart_file(httpx_mock):
    httpx_mock.add_response(method="POST", url=f"{BASE_URL}/users/imports", json={"id": "imp-1"})
    client = _client()

    data = await client.upload("/users/imports", b"id;name\n1;x\n", "stores.csv")
    await client.close()

    assert data == {"id": "imp-1"}
    request = httpx_mock.get_requests()[0]
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    assert b'filename="stores.csv"' in request.read()
    assert request.headers["Authorization"] == "Basic secret"


@pytest.mark.asyncio
async def test_upload_no_content_returns_null_id(httpx_mock):
    httpx_mock.add_response(method="POST", url=f"{BASE_URL}/users/imports", status_code=204)
    client = _client()

    assert await client.upload("/users/imports", b"x", "x.csv") == {"id": None}
    await client.close()


@pytest.mark.asyncio
async def test_iter_pages_stops_on_short_page(httpx_mock):
    httpx_mock.add_response(
        method="GET", url=f"{BASE_URL}/users?limit=2&offset=0", json={"data": [{"id": 1}, {"id": 2}]}
    )
    httpx_mock.add_response(method="GET", url=f"{BASE_URL}/users?limit=2&offset=2", json={"data": [{"id": 3}]})
    client = _client()

    pages = [page async for page in client.iter_pages("/users", 2)]
    await client.close()

    assert pages == [[{"id": 1}, {"id": 2}], [{"id": 3}]]
