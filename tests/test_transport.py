import asyncio
import httpx
import json
import pytest
import restbase.params

from dataclasses import dataclass
from restbase.error import InternalServerError, NotFoundError, ServerError, TransportError
from restbase.resource import Hooks, ResourceClient
from restbase.pagination import page_from_json
from restbase.transport import CachingTransport, Form, HTTPXTransport, Transport


pytestmark = pytest.mark.asyncio


class Recorder:
    """httpx mock transport handler that records requests and returns canned responses."""

    def __init__(self, status=200, json_body=None, text=None):
        self.status = status
        self.json_body = json_body
        self.text = text
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status, text=self.text)
        if self.json_body is not None:
            return httpx.Response(self.status, json=self.json_body)
        return httpx.Response(self.status)


def make_transport(handler, **kwargs):
    client = httpx.AsyncClient(
        base_url="https://api.example.com", transport=httpx.MockTransport(handler)
    )
    return HTTPXTransport(client=client, **kwargs)


async def test_protocols():
    async with make_transport(Recorder()) as transport:
        assert isinstance(transport, Transport)
        assert isinstance(transport, CachingTransport)


async def test_get_json():
    recorder = Recorder(json_body={"id": 1, "name": "one"})
    async with make_transport(recorder, token="secret") as transport:
        response = await transport.get("/users/1")
    assert response.status == 200
    assert response.data == {"id": 1, "name": "one"}
    request = recorder.requests[0]
    assert request.method == "GET"
    assert request.url == "https://api.example.com/users/1"
    assert request.headers["Authorization"] == "Bearer secret"


async def test_no_token():
    recorder = Recorder(json_body=[])
    async with make_transport(recorder, headers={"X-Client": "tests"}) as transport:
        await transport.get("/users")
    assert "Authorization" not in recorder.requests[0].headers
    assert recorder.requests[0].headers["X-Client"] == "tests"


async def test_get_params_serializer():
    recorder = Recorder(json_body=[])
    async with make_transport(recorder) as transport:
        transport.params_serializer = restbase.params.brackets
        await transport.get("/users", params={"length": 10, "id": [1, 2], "withTotal": True})
    url = recorder.requests[0].url
    assert url.params.get_list("id[]") == ["1", "2"]
    assert url.params["length"] == "10"
    assert url.params["withTotal"] == "true"


async def test_get_text_and_empty():
    async with make_transport(Recorder(text="plain")) as transport:
        assert (await transport.get("/ping")).data == "plain"
    async with make_transport(Recorder(status=204)) as transport:
        assert (await transport.delete("/users/1")).data is None


async def test_post_json():
    recorder = Recorder(status=201, json_body={"id": 99})
    async with make_transport(recorder) as transport:
        response = await transport.post("/users", {"name": "new"})
    assert response.data == {"id": 99}
    assert json.loads(recorder.requests[0].content) == {"name": "new"}


async def test_put_dataclass():
    @dataclass
    class User:
        name: str
        role: str

    recorder = Recorder(status=204)
    async with make_transport(recorder) as transport:
        await transport.put("/users/1", User("x", "admin"))
    assert recorder.requests[0].method == "PUT"
    assert json.loads(recorder.requests[0].content) == {"name": "x", "role": "admin"}


async def test_post_form():
    recorder = Recorder(status=201, json_body={"id": 5})
    form = Form(fields={"title": "avatar"}, files={"file": ("a.png", b"\x89PNG", "image/png")})
    async with make_transport(recorder) as transport:
        await transport.post("/uploads", form)
    request = recorder.requests[0]
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    assert b"avatar" in request.content
    assert b"\x89PNG" in request.content


async def test_post_form_without_files():
    recorder = Recorder(status=201, json_body={"id": 6})
    async with make_transport(recorder) as transport:
        await transport.post("/uploads", Form(fields={"title": "avatar", "size": 3}))
    request = recorder.requests[0]
    assert request.headers["Content-Type"].startswith("multipart/form-data; boundary=")
    assert b'Content-Disposition: form-data; name="title"\r\n\r\navatar\r\n' in request.content
    assert b'name="size"\r\n\r\n3\r\n' in request.content


async def test_not_found():
    async with make_transport(Recorder(status=404, text="no such user")) as transport:
        with pytest.raises(NotFoundError) as info:
            await transport.get("/users/1")
    assert "no such user" in str(info.value)


async def test_server_error():
    async with make_transport(Recorder(status=500)) as transport:
        with pytest.raises(InternalServerError):
            await transport.put("/users/1", {})
    async with make_transport(Recorder(status=599)) as transport:
        with pytest.raises(ServerError):
            await transport.delete("/users/1")


async def test_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with make_transport(handler) as transport:
        with pytest.raises(TransportError) as info:
            await transport.get("/users")
    assert isinstance(info.value.__cause__, httpx.ConnectError)


async def test_get_with_cache():
    recorder = Recorder(json_body={"id": 1})
    async with make_transport(recorder) as transport:
        first = await transport.get_with_cache("/users/1", ttl=1000)
        second = await transport.get_with_cache("/users/1", ttl=1000)
        assert first == second
        assert len(recorder.requests) == 1
        await transport.get_with_cache("/users/2", ttl=1000)
        assert len(recorder.requests) == 2


async def test_get_with_cache_expired():
    recorder = Recorder(json_body={"id": 1})
    async with make_transport(recorder) as transport:
        await transport.get_with_cache("/users/1", ttl=10)
        await asyncio.sleep(0.02)
        await transport.get_with_cache("/users/1", ttl=10)
    assert len(recorder.requests) == 2


async def test_get_with_cache_disabled():
    recorder = Recorder(json_body={"id": 1})
    async with make_transport(recorder) as transport:
        await transport.get_with_cache("/users/1", use_cache=False)
        await transport.get_with_cache("/users/1", use_cache=False)
    assert len(recorder.requests) == 2


async def test_failure_not_cached():
    recorder = Recorder(status=503)
    async with make_transport(recorder) as transport:
        for _ in range(2):
            with pytest.raises(ServerError):
                await transport.get_with_cache("/users/1")
    assert len(recorder.requests) == 2


async def test_resource_client():
    def handler(request):
        if request.method == "GET" and request.url.path == "/users":
            offset = int(request.url.params["offset"])
            length = int(request.url.params["length"])
            data = [{"id": n} for n in range(offset, min(offset + length, 25))]
            return httpx.Response(200, json={"data": data, "total": 25})
        if request.method == "GET":
            return httpx.Response(200, json={"id": int(request.url.path.rsplit("/", 1)[-1])})
        if request.method == "POST":
            return httpx.Response(201, json={"id": 26})
        return httpx.Response(204)

    transport = make_transport(handler, token="secret")
    raw = make_transport(handler)
    hooks = Hooks(
        transport=lambda: transport,
        raw_transport=lambda: raw,
        configure_params=lambda t: setattr(t, "params_serializer", restbase.params.comma),
        normalize_list=lambda response: page_from_json(response.data),
        normalize_filter=dict,
        normalize_item=lambda item: item,
    )
    client = ResourceClient("/users", hooks, default_object={"active": True})
    try:
        assert await client.get("3") == {"id": 3, "active": True}
        assert await client.create({"name": "new"}) == 26
        await client.update("3", {"name": "x"})
        await client.delete("3")
        items = await client.get_all_pages_base_list(page_size=10)
        assert [item["id"] for item in items] == list(range(25))
    finally:
        await transport.aclose()
        await raw.aclose()
