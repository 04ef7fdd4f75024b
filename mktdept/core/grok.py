from __future__ import annotations
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

import httpx

from mktdept.core.config import Settings
from mktdept.core.errors import AiServiceError, ConfigurationError

log = logging.getLogger(__name__)


class AiService(Protocol):
    name: str

    def is_configured(self) -> bool: ...

    async def transform_content(self, prompt: str, content: str) -> str: ...


def _error_detail(body: str) -> str:
    try:
        data = json.loads(body)
    except ValueError:
        return body[:500] if body else "Unknown error"
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or error)
        if error:
            return str(error)
        if data.get("message"):
            return str(data["message"])
    return body[:500]


@dataclass
class GrokClient:
    """x.ai chat-completions client."""
    api_key: Optional[str]
    model: str = "grok-2"
    api_url: str = "https://api.x.ai/v1/chat/completions"
    timeout: float = 120.0
    transport: Optional[httpx.AsyncBaseTransport] = None
    name: str = "grok"

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def transform_content(self, prompt: str, content: str) -> str:
        if not self.is_configured():
            raise ConfigurationError("Grok API key not configured. Please add your API key in Settings.")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": prompt},
                {"role": "user", "content": content},
            ],
        }
        started = time.monotonic()
        async with self._client() as client:
            r = await client.post(self.api_url, headers=self._headers(), json=payload)
        log.info("POST %s -> %s (%.0f ms)", self.api_url, r.status_code, (time.monotonic() - started) * 1000)

        if r.status_code != 200:
            detail = _error_detail(r.text)
            log.error("Grok request failed: HTTP %s %s", r.status_code, detail)
            raise AiServiceError("Grok API Error", r.status_code, detail, json.dumps(payload, indent=2), r.text)

        try:
            return r.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AiServiceError(
                "Invalid API response", r.status_code, f"missing field {e}", json.dumps(payload), r.text
            ) from e

    async def list_models(self) -> List[str]:
        if not self.is_configured():
            raise ConfigurationError("Grok API key not configured")
        models_url = self.api_url.rsplit("/chat/completions", 1)[0] + "/models"
        async with self._client() as client:
            r = await client.get(models_url, headers=self._headers())
        if r.status_code != 200:
            raise AiServiceError("Failed to fetch models", r.status_code, _error_detail(r.text))
        return [m["id"] for m in r.json().get("data", []) if m.get("id")]


@dataclass
class AiServiceFactory:
    """Resolves a project's selected agent name to a client; clients are reused."""
    settings: Settings
    services: Dict[str, AiService] = field(default_factory=dict)

    def get(self, name: Optional[str]) -> Optional[AiService]:
        if not name:
            return None
        key = name.strip().lower()
        if key not in self.services:
            if key != "grok":
                return None
            self.services[key] = GrokClient(
                api_key=self.settings.grok_api_key,
                model=self.settings.grok_model,
                api_url=self.settings.grok_api_url,
                timeout=self.settings.ai_timeout,
            )
        return self.services[key]

    def is_available(self, name: Optional[str]) -> bool:
        service = self.get(name)
        return service is not None and service.is_configured()
