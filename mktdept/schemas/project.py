"""Project-level records: settings, post metadata, transforms and profiles."""
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from mktdept.schemas.pipeline import CamelModel, utc_now_iso

TAG_INDEX_FILE = "tags.html"


class PostStatus(str, Enum):
    DRAFT = "DRAFT"
    REVIEW = "REVIEW"
    FINISHED = "FINISHED"


def parse_post_status(value: Optional[str]) -> PostStatus:
    if not value:
        return PostStatus.DRAFT
    name = value.strip().upper()
    if name == "PUBLISHED":
        return PostStatus.FINISHED
    try:
        return PostStatus(name)
    except ValueError:
        return PostStatus.DRAFT


class AuthMethod(str, Enum):
    MANUAL_BROWSER = "MANUAL_BROWSER"
    API_KEY = "API_KEY"
    OAUTH = "OAUTH"


class ProjectSettings(CamelModel):
    """Contents of ``.project-settings.json``."""
    selected_agent: str = "grok"
    default_author: Optional[str] = None
    url_base: Optional[str] = None
    post_template: str = "post-template.html"
    tag_index_template: str = "tag-index-template.html"
    listing_template: str = "listing-template.html"
    listing_output_pattern: str = "blog-"
    posts_per_page: int = 10
    web_export_directory: str = "./public"

    @field_validator("url_base", mode="before")
    @classmethod
    def _normalize_url_base(cls, value):
        if value is None or not str(value).strip():
            return None
        value = str(value).strip()
        return value if value.endswith("/") else value + "/"

    @field_validator("posts_per_page", mode="before")
    @classmethod
    def _positive_page_size(cls, value):
        try:
            value = int(value)
        except (TypeError, ValueError):
            return 10
        return value if value > 0 else 10

    @field_validator("selected_agent", mode="before")
    @classmethod
    def _agent(cls, value):
        return value or "grok"

    def has_url_base(self) -> bool:
        return bool(self.url_base)

    def tag_index_url(self) -> Optional[str]:
        return self.url_base + TAG_INDEX_FILE if self.url_base else None

    def listing_file_name(self, page: int) -> str:
        return f"{self.listing_output_pattern}{page}.html"


class PostMeta(CamelModel):
    """Contents of ``posts/{name}.json``."""
    title: str = ""
    status: PostStatus = PostStatus.DRAFT
    tags: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    date: Optional[str] = None
    author: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value):
        if isinstance(value, PostStatus):
            return value
        return parse_post_status(None if value is None else str(value))

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [str(t).strip() for t in value if str(t).strip()]


class PlatformTransform(CamelModel):
    text: str = ""
    timestamp: str = Field(default_factory=utc_now_iso)
    approved: bool = False


class WebTransform(CamelModel):
    """Web-export metadata stored under the reserved ``web`` key."""
    uri: str = ""
    timestamp: str = Field(default_factory=utc_now_iso)
    exported: bool = False
    last_export_path: Optional[str] = None

    def mark_exported(self, path: str) -> None:
        self.exported = True
        self.last_export_path = path
        self.timestamp = utc_now_iso()

    def exported_file_exists(self) -> bool:
        if not self.exported or not self.last_export_path:
            return False
        return Path(self.last_export_path).is_file()


@dataclass(frozen=True)
class ProfileOptions:
    include_url: bool = False
    url_placement: str = "end"
    custom_hashtags: tuple = ()


class PublishingProfile(CamelModel):
    id: str
    name: str = ""
    platform: str = ""
    auth_method: AuthMethod = AuthMethod.API_KEY
    get_late_account_id: Optional[str] = None
    settings: Dict[str, str] = Field(default_factory=dict)

    @field_validator("auth_method", mode="before")
    @classmethod
    def _auth_method(cls, value):
        if isinstance(value, AuthMethod):
            return value
        try:
            return AuthMethod(str(value).strip().upper())
        except ValueError:
            return AuthMethod.API_KEY

    @field_validator("settings", mode="before")
    @classmethod
    def _settings(cls, value):
        if not value:
            return {}
        return {k: ("true" if v is True else "false" if v is False else str(v))
                for k, v in dict(value).items() if v is not None}

    @property
    def options(self) -> ProfileOptions:
        hashtags = self.settings.get("customHashtags", "")
        return ProfileOptions(
            include_url=self.settings.get("includeUrl", "false").strip().lower() == "true",
            url_placement=self.settings.get("urlPlacement") or "end",
            custom_hashtags=tuple(t for t in re.split(r"[\s,]+", hashtags) if t),
        )
