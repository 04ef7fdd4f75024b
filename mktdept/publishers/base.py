import json
from dataclasses import dataclass
from typing import Optional

from mktdept.schemas.project import PublishingProfile


@dataclass
class PublishResult:
    success: bool
    message: str
    post_url: Optional[str] = None
    article_id: Optional[str] = None


class BasePublisher:
    name: str

    def is_configured(self) -> bool:
        raise NotImplementedError

    async def publish(self, profile: PublishingProfile, content: str) -> PublishResult:
        raise NotImplementedError


def extract_error_message(body: str, *keys: str) -> str:
    """Pull a readable error out of a JSON error body, falling back to a truncated excerpt."""
    try:
        data = json.loads(body)
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in keys or ("message", "error"):
            value = data.get(key)
            if isinstance(value, dict):
                value = value.get("message")
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value)
            if value:
                return str(value)
    if not body:
        return "empty response"
    return body[:200] + "..." if len(body) > 200 else body
