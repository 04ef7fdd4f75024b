from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

class StageType(str, Enum):
    WEB_EXPORT = "WEB_EXPORT"
    URL_VERIFY = "URL_VERIFY"
    GETLATE = "GETLATE"
    DEV_TO = "DEV_TO"
    FACEBOOK_COPY_PASTA = "FACEBOOK_COPY_PASTA"
    HACKER_NEWS_EXPORT = "HACKER_NEWS_EXPORT"

class StageStatus(str, Enum):
    LOCKED = "LOCKED"
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    WARNING = "WARNING"

@dataclass(frozen=True)
class StageTraits:
    display_name: str
    gatekeeper: bool = False
    social: bool = False
    blog: bool = False
    export: bool = False
    copy_paste: bool = False
    requires_transform: bool = False
    default_platform_hint: Optional[str] = None

STAGE_TRAITS: Dict[StageType, StageTraits] = {
    StageType.WEB_EXPORT: StageTraits("Web Export", gatekeeper=True, export=True),
    StageType.URL_VERIFY: StageTraits("URL Liveness Check", gatekeeper=True),
    StageType.GETLATE: StageTraits("GetLate Social", social=True, requires_transform=True),
    StageType.DEV_TO: StageTraits("Dev.to", blog=True, requires_transform=True,
                                  default_platform_hint="devto"),
    StageType.FACEBOOK_COPY_PASTA: StageTraits("Facebook (Copy/Paste)", social=True, copy_paste=True,
                                               requires_transform=True,
                                               default_platform_hint="facebook_copy_pasta"),
    StageType.HACKER_NEWS_EXPORT: StageTraits("Hacker News Export", blog=True, export=True,
                                              requires_transform=True,
                                              default_platform_hint="hackernews"),
}

# Stage kinds from before the unified social API
LEGACY_STAGE_ALIASES: Dict[str, StageType] = {
    "LINKEDIN": StageType.GETLATE,
    "TWITTER": StageType.GETLATE,
}

STATUS_SYMBOLS: Dict[StageStatus, str] = {
    StageStatus.LOCKED: "#",
    StageStatus.PENDING: " ",
    StageStatus.IN_PROGRESS: ">",
    StageStatus.COMPLETED: "*",
    StageStatus.FAILED: "!",
    StageStatus.WARNING: "~",
}


def traits(stage_type: StageType) -> StageTraits:
    return STAGE_TRAITS[stage_type]


def is_gatekeeper(stage_type: StageType) -> bool:
    return STAGE_TRAITS[stage_type].gatekeeper


def is_social_stage(stage_type: StageType) -> bool:
    return STAGE_TRAITS[stage_type].social


def is_blog_stage(stage_type: StageType) -> bool:
    return STAGE_TRAITS[stage_type].blog


def is_dependent_stage(stage_type: StageType) -> bool:
    """Social and blog stages wait on every gatekeeper."""
    return not STAGE_TRAITS[stage_type].gatekeeper


def is_export_stage(stage_type: StageType) -> bool:
    return STAGE_TRAITS[stage_type].export


def is_copy_paste_stage(stage_type: StageType) -> bool:
    return STAGE_TRAITS[stage_type].copy_paste


def requires_transform(stage_type: StageType) -> bool:
    return STAGE_TRAITS[stage_type].requires_transform


def display_name(stage_type: StageType) -> str:
    return STAGE_TRAITS[stage_type].display_name


def parse_stage_type(value: Optional[str]) -> Optional[StageType]:
    """Parse a persisted stage type name; None means the stage is dropped."""
    if value is None or not value.strip():
        return None
    name = value.strip().upper()
    if name in LEGACY_STAGE_ALIASES:
        return LEGACY_STAGE_ALIASES[name]
    try:
        return StageType(name)
    except ValueError:
        return None


def parse_stage_status(value: Optional[str]) -> StageStatus:
    if value is None or not value.strip():
        return StageStatus.PENDING
    try:
        return StageStatus(value.strip().upper())
    except ValueError:
        return StageStatus.PENDING


def is_complete(status: StageStatus) -> bool:
    return status in (StageStatus.COMPLETED, StageStatus.WARNING)


def is_terminal(status: StageStatus) -> bool:
    return status in (StageStatus.COMPLETED, StageStatus.FAILED, StageStatus.WARNING)


def status_symbol(status: StageStatus) -> str:
    return STATUS_SYMBOLS[status]
