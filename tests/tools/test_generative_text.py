import json

import httpx
import pytest
import pytest_asyncio

from ischoolgo.backend.errors import ExternalServiceError
from ischoolgo.backend.tools.generative_text import GenerativeTextClient
from mock_generative_service import app as stub_app

BASE_URL = "https://generative.test"
ENDPOINT = f"{BASE_URL}/v1beta/models/gemini-pro:generateContent?key=secret"


def make_client(http_client: httpx.AsyncClient = None, api_key: str = "secret") -> GenerativeTextClient:
    return GenerativeTextClient(http_client=http_client, base_url=BASE_URL, api_key=api_key, model="gemini-pro")


# --- Against the stub service, over ASGI ---

@pytest_asyncio.fixture
async def stub_http_client():
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=stub_app), base_url=BASE_URL) as client:
        yield client


@pytest.mark.asyncio
async def test_generate_against_stub_service(stub_http_client):
    text = await make_client(stub_http_client).generate("Write a welcome line.\nMore context.")
    assert text == "[gemini-pro] Write a welcome line."


@pytest.mark.asyncio
async def test_stub_rejection_becomes_external_service_error(stub_http_client):
    with pytest.raises(ExternalServiceError):
        await make_client(stub_http_client, api_key="").generate("hello")


# --- Against mocked HTTP responses ---

@pytest.mark.asyncio
async def test_generate_sends_prompt_and_returns_text(httpx_mock):
    httpx_mock.add_response(
        method="POST",
        url=ENDPOINT,
        json={"candidates": [{"content": {"parts": [{"text": "Hello there"}]}}]},
    )

    text = await make_client().generate("Say hello")

    assert text == "Hello there"
    sent = json.loads(httpx_mock.get_request().content)
    assert sent == {"contents": [{"parts": [{"text": "Say hello"}]}]}


@pytest.mark.asyncio
async def test_non_2xx_raises_external_service_error(httpx_mock):
    httpx_mock.add_response(method="POST", url=ENDPOINT, status_code=500, text="boom")

    with pytest.raises(ExternalServiceError):
        await make_client().generate("Say hello")


@pytest.mark.asyncio
async def test_malformed_body_raises_external_service_error(httpx_mock):
    httpx_mock.add_response(method="POST", url=ENDPOINT, json={"candidates": []})

    with pytest.raises(ExternalServiceError):
        await make_client().generate("Say hello")


@pytest.mark.asyncio
async def test_network_error_raises_external_service_error(httpx_mock):
    httpx_mock.add_exception(httpx.ConnectError("unreachable"))

    with pytest.raises(ExternalServiceError):
        await make_client().generate("Say hello")
