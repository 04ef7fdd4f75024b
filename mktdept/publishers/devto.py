from __future__ import annotations
import logging
import re
import time
from dataclasses import dataclass
from typing import List, Optional

import httpx

from mktdept.publishers.base import PublishResult, extract_error_message

log = logging.getLogger(__name__)

MAX_TAGS = 4


def normalize_tags(tags: Optional[List[str]]) -> List[str]:
    """Dev.to accepts at most four lowercase tags without spaces."""
    out = []
    for tag in (tags or [])[:MAX_TAGS]:
        tag = re.sub(r"\s+", "", tag.lower())
        if tag:
            out.append(tag)
    return out


@dataclass
class DevToClient:
    api_key: Optional[str]
    api_base: str = "https://dev.to/api"
    timeout: float = 60.0
    transport: Optional[httpx.AsyncBaseTransport] = None

    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def _headers(self) -> dict:
        return {
            "api-key": self.api_key or "",
            "Content-Type": "application/json",
            "Accept": "application/vnd.forem.api-v1+json",
        }

    @staticmethod
    def build_article(title: str, body_markdown: str, tags: Optional[List[str]],
                      canonical_url: Optional[str], description: Optional[str], published: bool) -> dict:
        article = {"title": title, "body_markdown": body_markdown, "published": published}
        tags = normalize_tags(tags)
        if tags:
            article["tags"] = tags
        if canonical_url and canonical_url.strip():
            article["canonical_url"] = canonical_url
        if description and description.strip():
            article["description"] = description
        return {"article": article}

    async def publish_article(
        self,
        title: str,
        body_markdown: str,
        tags: Optional[List[str]] = None,
        canonical_url: Optional[str] = None,
        description: Optional[str] = None,
        published: bool = True,
    ) -> PublishResult:
        if not self.is_configured():
            return PublishResult(False, "Dev.to API key not configured. Add a 'devto' API key in Settings.")

        url = f"{self.api_base}/articles"
        payload = self.build_article(title, body_markdown, tags, canonical_url, description, published)
        started = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(url, headers=self._headers(), json=payload)
        except httpx.HTTPError as e:
            log.error("Dev.to request failed: %s", e)
            return PublishResult(False, f"Request failed: {e}")

        log.info("POST %s -> %s (%.0f ms)", url, r.status_code, (time.monotonic() - started) * 1000)

        if r.status_code in (200, 201):
            try:
                data = r.json()
            except ValueError:
                data = {}
            message = "Article published successfully" if data.get("published") else "Article saved as draft"
            article_id = data.get("id")
            return PublishResult(True, message, data.get("url"), str(article_id) if article_id is not None else None)
        if r.status_code == 401:
            return PublishResult(False, "Authentication failed - check your API key")
        if r.status_code == 422:
            return PublishResult(False, f"Validation error: {extract_error_message(r.text, 'error', 'message', 'errors')}")

        message = f"Failed ({r.status_code}): {extract_error_message(r.text, 'error', 'message', 'errors')}"
        log.error(message)
        return PublishResult(False, message)
