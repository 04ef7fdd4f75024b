from dataclasses import dataclass
from typing import Dict, Optional

from mktdept.core.config import Settings
from mktdept.publishers.base import BasePublisher
from mktdept.publishers.getlate import SUPPORTED_PLATFORMS, GetLatePublisher


@dataclass
class PublisherRegistry:
    """Maps a profile's platform name to the backend that publishes it."""
    mapping: Dict[str, BasePublisher]

    def get(self, platform: Optional[str]) -> Optional[BasePublisher]:
        if not platform:
            return None
        return self.mapping.get(platform.strip().lower())

    @staticmethod
    def default(settings: Settings) -> "PublisherRegistry":
        getlate = GetLatePublisher(
            api_key=settings.getlate_api_key,
            api_base=settings.getlate_api_base,
            timeout=settings.publish_timeout,
        )
        mapping: Dict[str, BasePublisher] = {platform: getlate for platform in SUPPORTED_PLATFORMS}
        mapping["x"] = getlate
        return PublisherRegistry(mapping=mapping)
