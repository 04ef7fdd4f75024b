from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from typing import List, Optional

import httpx

from mktdept.publishers.base import BasePublisher, PublishResult, extract_error_message
from mktdept.schemas.project import PublishingProfile

log = logging.getLogger(__name__)

SUPPORTED_PLATFORMS = [
    "twitter",
    "linkedin",
    "instagram",
    "facebook",
    "tiktok",
    "youtube",
    "pinterest",
    "reddit",
    "bluesky",
    "threads",
    "googlebusiness",
    "telegram",
    "snapchat",
]

PLATFORM_DISPLAY_NAMES = {
    "twitter": "X/Twitter",
    "linkedin": "LinkedIn",
    "instagram": "Instagram",
    "facebook": "Facebook",
    "tiktok": "TikTok",
    "youtube": "YouTube",
    "pinterest": "Pinterest",
    "reddit": "Reddit",
    "bluesky": "Bluesky",
    "threads": "Threads",
    "googlebusiness": "Google Business",
    "telegram": "Telegram",
    "snapchat": "Snapchat",
}


def platform_display_name(platform: str) -> str:
    return PLATFORM_DISPLAY_NAMES.get(platform.lower(), platform)


@dataclass
class GetLateAccount:
    id: str
    platform: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    profile_url: Optional[str] = None
    is_active: bool = False


@dataclass
class GetLatePublisher(BasePublisher):
    """Unified social publishing through the GetLate API."""
    api_key: Optional[str]
    api_base: str = "https://getlate.dev/api/v1"
    timeout: float = 60.0
    transport: Optional[httpx.AsyncBaseTransport] = None
    name: str = "getlate"

    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def fetch_accounts(self) -> List[GetLateAccount]:
        if not self.is_configured():
            raise RuntimeError("GetLate API key not configured")
        url = f"{self.api_base}/accounts"
        async with self._client() as client:
            r = await client.get(url, headers=self._headers())
        if r.status_code != 200:
            raise RuntimeError(f"Failed to fetch accounts: {r.status_code} - {r.text}")
        accounts = []
        for item in r.json().get("accounts", []):
            if not item.get("_id") or not item.get("platform"):
                continue
            accounts.append(GetLateAccount(
                id=item["_id"],
                platform=item["platform"],
                username=item.get("username"),
                display_name=item.get("displayName"),
                profile_url=item.get("profileUrl"),
                is_active=str(item.get("isActive", "")).lower() == "true",
            ))
        log.info("Found %d connected GetLate account(s)", len(accounts))
        return accounts

    async def publish(self, profile: PublishingProfile, content: str) -> PublishResult:
        if not self.is_configured():
            return PublishResult(False, "GetLate API key not configured")
        if not profile.get_late_account_id:
            return PublishResult(False, f"Profile '{profile.name}' has no GetLate account linked")

        platform = profile.platform.lower()
        url = f"{self.api_base}/posts"
        payload = {
            "content": content,
            "publishNow": True,
            "platforms": [{"platform": platform, "accountId": profile.get_late_account_id}],
        }
        log.info("Publishing to %s (account: %s)", platform_display_name(platform), profile.get_late_account_id)

        started = time.monotonic()
        try:
            async with self._client() as client:
                r = await client.post(url, headers=self._headers(), json=payload)
        except httpx.HTTPError as e:
            elapsed = (time.monotonic() - started) * 1000
            log.error("GetLate request failed after %.0f ms: %s", elapsed, e)
            return PublishResult(False, f"Request failed: {e}")

        log.info("POST %s -> %s (%.0f ms)", url, r.status_code, (time.monotonic() - started) * 1000)

        if r.status_code in (200, 201):
            return self._parse_publish_response(r, platform)
        if r.status_code == 409:
            return PublishResult(False, "Duplicate content - this was posted within the last 24 hours")
        if r.status_code == 429:
            return PublishResult(False, "Rate limit exceeded - please try again later")

        message = f"Failed ({r.status_code}): {extract_error_message(r.text, 'message', 'error')}"
        log.error(message)
        return PublishResult(False, message)

    def _parse_publish_response(self, r: httpx.Response, platform: str) -> PublishResult:
        try:
            data = r.json()
        except ValueError:
            data = {}
        post_url = None
        post = data.get("post") if isinstance(data, dict) else None
        for entry in (post or {}).get("platforms", []):
            if str(entry.get("platform", "")).lower() != platform:
                continue
            if str(entry.get("status", "")).lower() == "failed":
                return PublishResult(False, "Platform reported failure")
            post_url = entry.get("platformPostUrl")
            break
        message = data.get("message") if isinstance(data, dict) else None
        return PublishResult(True, message or "Published successfully", post_url)
