"""Tests for the Grok client and AI service factory."""
import json

import httpx
import pytest

from mktdept.core.config import Settings
from mktdept.core.errors import AiServiceError, ConfigurationError
from mktdept.core.grok import AiServiceFactory, GrokClient


def _client(status, body, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=body)

    return GrokClient(api_key="gk", api_url="https://grok.test/v1/chat/completions",
                      transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_transform_content_sends_prompt_as_system_message():
    seen = []
    body = {"choices": [{"message": {"role": "assistant", "content": "Rewritten!"}}]}
    text = await _client(200, body, seen).transform_content("Be brief", "# Post")

    assert text == "Rewritten!"
    payload = json.loads(seen[0].content)
    assert payload["model"] == "grok-2"
    assert payload["messages"] == [
        {"role": "system", "content": "Be brief"},
        {"role": "user", "content": "# Post"},
    ]
    assert seen[0].headers["Authorization"] == "Bearer gk"


@pytest.mark.asyncio
async def test_non_200_raises_with_details():
    with pytest.raises(AiServiceError) as excinfo:
        await _client(401, {"error": {"message": "bad key"}}).transform_content("p", "c")
    err = excinfo.value
    assert err.status_code == 401
    assert err.error_detail == "bad key"
    assert "Grok API Error" in str(err)
    details = err.full_details()
    assert "=== REQUEST ===" in details
    assert "bad key" in details


@pytest.mark.asyncio
async def test_malformed_response_raises():
    with pytest.raises(AiServiceError):
        await _client(200, {"choices": []}).transform_content("p", "c")


@pytest.mark.asyncio
async def test_unconfigured_client_raises():
    with pytest.raises(ConfigurationError):
        await GrokClient(api_key=None).transform_content("p", "c")


@pytest.mark.asyncio
async def test_list_models():
    models = await _client(200, {"data": [{"id": "grok-2"}, {"id": "grok-beta"}, {}]}).list_models()
    assert models == ["grok-2", "grok-beta"]


def test_factory_resolves_and_caches_grok():
    factory = AiServiceFactory(Settings(_env_file=None, grok_api_key="gk", grok_model="grok-3"))
    client = factory.get("Grok")
    assert client is factory.get("grok")
    assert client.model == "grok-3"
    assert factory.is_available("grok")
    assert factory.get("claude") is None
    assert not factory.is_available(None)


def test_factory_reports_unconfigured():
    factory = AiServiceFactory(Settings(_env_file=None, grok_api_key=None))
    assert factory.get("grok") is not None
    assert not factory.is_available("grok")
