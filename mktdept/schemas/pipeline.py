"""Pipeline definition and per-post execution state.

These models are also the on-disk format: ``.pipeline.json`` in the project
root and ``{post}-pipeline.json`` next to each post. Field names are camelCase
on disk and snake_case in Python.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from mktdept.core.errors import DuplicateStageError
from mktdept.core.prompts import default_prompt_for
from mktdept.core.workflow import (
    StageStatus,
    StageType,
    is_complete,
    is_dependent_stage,
    is_gatekeeper,
    is_terminal,
    parse_stage_status,
    parse_stage_type,
    requires_transform,
    traits,
)

log = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _new_id() -> str:
    return str(uuid.uuid4())


def _setting_is_true(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() == "true"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class StageOptions:
    """Typed view over a stage's persisted settings map."""
    include_url: bool = False
    url_placement: str = "end"
    require_code_match: bool = True
    published: bool = True
    include_canonical: bool = True


class PipelineStage(CamelModel):
    id: str = Field(default_factory=_new_id)
    type: Optional[StageType] = None
    profile_id: Optional[str] = None
    platform_hint: Optional[str] = None
    order: int = 0
    enabled: bool = True
    prompt: Optional[str] = None
    stage_settings: Dict[str, str] = Field(default_factory=dict)

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, value):
        if value is None or isinstance(value, StageType):
            return value
        return parse_stage_type(str(value))

    @field_validator("stage_settings", mode="before")
    @classmethod
    def _stringify_settings(cls, value):
        if value is None:
            return {}
        out = {}
        for key, item in dict(value).items():
            if isinstance(item, bool):
                out[key] = "true" if item else "false"
            elif item is not None:
                out[key] = str(item)
        return out

    @classmethod
    def create(
        cls,
        stage_type: StageType,
        order: int = 0,
        profile_id: Optional[str] = None,
        platform_hint: Optional[str] = None,
    ) -> "PipelineStage":
        stage = cls(type=stage_type, order=order, profile_id=profile_id, platform_hint=platform_hint)
        if profile_id and is_dependent_stage(stage_type):
            stage.id = cls.generate_cache_key(stage_type, profile_id)
        return stage

    @staticmethod
    def generate_cache_key(stage_type: StageType, profile_id: str) -> str:
        return f"{stage_type.value.lower()}-{profile_id}"

    def cache_key(self) -> str:
        """Key under which generated transforms for this destination are cached."""
        if self.type is not None and self.profile_id and is_dependent_stage(self.type):
            return self.generate_cache_key(self.type, self.profile_id)
        return self.id

    def effective_platform_hint(self) -> Optional[str]:
        if self.platform_hint:
            return self.platform_hint
        if self.type is None:
            return None
        return traits(self.type).default_platform_hint

    def effective_prompt(self) -> str:
        if self.prompt and self.prompt.strip():
            return self.prompt
        if self.type is not None and requires_transform(self.type):
            return default_prompt_for(self.effective_platform_hint())
        return ""

    def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.stage_settings.get(key, default)

    def get_setting_bool(self, key: str, default: bool) -> bool:
        return _setting_is_true(self.stage_settings.get(key), default)

    def set_setting(self, key: str, value: Union[str, bool]) -> None:
        if isinstance(value, bool):
            value = "true" if value else "false"
        self.stage_settings[key] = value

    @property
    def options(self) -> StageOptions:
        return StageOptions(
            include_url=self.get_setting_bool("includeUrl", False),
            url_placement=self.get_setting("urlPlacement", "end") or "end",
            require_code_match=self.get_setting_bool("requireCodeMatch", True),
            published=self.get_setting_bool("published", True),
            include_canonical=self.get_setting_bool("includeCanonical", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if not (self.prompt and self.prompt.strip()):
            data.pop("prompt", None)
        if not self.stage_settings:
            data.pop("stageSettings", None)
        return data


class Pipeline(CamelModel):
    id: str = Field(default_factory=_new_id)
    name: str = "Default Pipeline"
    stages: List[PipelineStage] = Field(default_factory=list)

    @field_validator("stages", mode="after")
    @classmethod
    def _drop_invalid_stages(cls, stages: List[PipelineStage]) -> List[PipelineStage]:
        kept = []
        seen = set()
        for stage in sorted(stages, key=lambda s: s.order):
            if stage.type is None:
                log.warning("Dropping pipeline stage %s with unknown type", stage.id)
                continue
            if stage.id in seen:
                log.warning("Dropping duplicate pipeline stage %s", stage.id)
                continue
            seen.add(stage.id)
            kept.append(stage)
        for index, stage in enumerate(kept):
            stage.order = index
        return kept

    def _reorder(self) -> None:
        for index, stage in enumerate(self.stages):
            stage.order = index

    def add_stage(self, stage: PipelineStage) -> None:
        if self.stage_by_id(stage.id) is not None:
            raise DuplicateStageError(f"Stage already in pipeline: {stage.id}")
        self.stages.append(stage)
        self._reorder()

    def remove_stage(self, stage: Union[PipelineStage, str]) -> bool:
        stage_id = stage if isinstance(stage, str) else stage.id
        before = len(self.stages)
        self.stages = [s for s in self.stages if s.id != stage_id]
        self._reorder()
        return len(self.stages) != before

    def move_stage(self, stage_id: str, new_index: int) -> None:
        stage = self.stage_by_id(stage_id)
        if stage is None:
            return
        self.stages.remove(stage)
        new_index = max(0, min(new_index, len(self.stages)))
        self.stages.insert(new_index, stage)
        self._reorder()

    def sorted_stages(self) -> List[PipelineStage]:
        return sorted(self.stages, key=lambda s: s.order)

    def enabled_stages(self) -> List[PipelineStage]:
        return [s for s in self.sorted_stages() if s.enabled]

    def gatekeeper_stages(self) -> List[PipelineStage]:
        return [s for s in self.sorted_stages() if s.type is not None and is_gatekeeper(s.type)]

    def social_stages(self) -> List[PipelineStage]:
        return [s for s in self.sorted_stages() if s.type is not None and not is_gatekeeper(s.type)]

    def stage_by_id(self, stage_id: str) -> Optional[PipelineStage]:
        return next((s for s in self.stages if s.id == stage_id), None)

    def has_stage_of_type(self, stage_type: StageType) -> bool:
        return any(s.type == stage_type for s in self.stages)

    @classmethod
    def create_default(cls) -> "Pipeline":
        pipeline = cls(name="Default Pipeline")

        web_export = PipelineStage.create(StageType.WEB_EXPORT, 0)
        web_export.id = "web-export"
        pipeline.add_stage(web_export)

        url_verify = PipelineStage.create(StageType.URL_VERIFY, 1)
        url_verify.id = "url-verify"
        url_verify.set_setting("requireCodeMatch", "true")
        pipeline.add_stage(url_verify)

        return pipeline

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "stages": [s.to_dict() for s in self.sorted_stages()],
        }


class StageResult(CamelModel):
    status: StageStatus = StageStatus.PENDING
    completed_at: Optional[str] = None
    message: Optional[str] = None
    published_url: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value):
        if isinstance(value, StageStatus):
            return value
        return parse_stage_status(None if value is None else str(value))

    @classmethod
    def of(cls, status: StageStatus, message: Optional[str] = None,
           published_url: Optional[str] = None) -> "StageResult":
        return cls(
            status=status,
            message=message,
            published_url=published_url,
            completed_at=utc_now_iso() if is_terminal(status) else None,
        )

    @classmethod
    def pending(cls) -> "StageResult":
        return cls.of(StageStatus.PENDING)

    @classmethod
    def in_progress(cls) -> "StageResult":
        return cls.of(StageStatus.IN_PROGRESS, "Executing...")

    @classmethod
    def completed(cls, message: str, published_url: Optional[str] = None) -> "StageResult":
        return cls.of(StageStatus.COMPLETED, message, published_url)

    @classmethod
    def failed(cls, message: str) -> "StageResult":
        return cls.of(StageStatus.FAILED, message)

    @classmethod
    def warning(cls, message: str, published_url: Optional[str] = None) -> "StageResult":
        return cls.of(StageStatus.WARNING, message, published_url)

    @property
    def is_complete(self) -> bool:
        return is_complete(self.status)

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)


class PipelineExecution(CamelModel):
    post_name: Optional[str] = None
    pipeline_id: Optional[str] = None
    deployment_id: str = Field(default_factory=_new_id)
    started_at: str = Field(default_factory=utc_now_iso)
    verified_url: Optional[str] = None
    verification_code: Optional[str] = None
    stage_results: Dict[str, StageResult] = Field(default_factory=dict)

    @field_validator("deployment_id", mode="before")
    @classmethod
    def _deployment_id(cls, value):
        return value or _new_id()

    @field_validator("started_at", mode="before")
    @classmethod
    def _started_at(cls, value):
        return value or utc_now_iso()

    @field_validator("stage_results", mode="before")
    @classmethod
    def _stage_results(cls, value):
        return value or {}

    @classmethod
    def start(cls, post_name: str, pipeline_id: Optional[str]) -> "PipelineExecution":
        return cls(post_name=post_name, pipeline_id=pipeline_id)

    def get_stage_result(self, stage_id: str) -> Optional[StageResult]:
        return self.stage_results.get(stage_id)

    def set_stage_result(self, stage_id: str, result: StageResult) -> None:
        self.stage_results[stage_id] = result

    def gatekeepers_complete(self, pipeline: Pipeline) -> bool:
        for stage in pipeline.gatekeeper_stages():
            result = self.stage_results.get(stage.id)
            if result is None or not result.is_complete:
                return False
        return True

    def effective_status(self, stage: PipelineStage, pipeline: Pipeline) -> StageStatus:
        result = self.stage_results.get(stage.id)
        if result is not None:
            return result.status
        if stage.type is not None and is_dependent_stage(stage.type) and not self.gatekeepers_complete(pipeline):
            return StageStatus.LOCKED
        return StageStatus.PENDING

    def reset(self, clear_results: bool = True) -> None:
        """Start a new deployment cycle for the same post."""
        self.deployment_id = _new_id()
        self.started_at = utc_now_iso()
        self.verified_url = None
        self.verification_code = None
        if clear_results:
            self.stage_results = {}

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["stageResults"] = {k: v.to_dict() for k, v in self.stage_results.items()}
        return data
