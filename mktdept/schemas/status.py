from typing import Dict, List, Optional

from pydantic import BaseModel

from mktdept.core.workflow import StageStatus, StageType


class StageInfo(BaseModel):
    id: str
    type: StageType
    display_name: str
    order: int
    enabled: bool
    profile_id: Optional[str] = None
    platform_hint: Optional[str] = None
    cache_key: str
    settings: Dict[str, str] = {}


class PipelineResponse(BaseModel):
    project: str
    id: str
    name: str
    stages: List[StageInfo]


class StageStatusResponse(BaseModel):
    id: str
    type: StageType
    display_name: str
    status: StageStatus
    symbol: str
    message: Optional[str] = None
    published_url: Optional[str] = None
    completed_at: Optional[str] = None


class PostStatusResponse(BaseModel):
    project: str
    post: str
    stages: List[StageStatusResponse]


class StageResultResponse(BaseModel):
    stage_id: str
    status: StageStatus
    message: Optional[str] = None
    published_url: Optional[str] = None
    completed_at: Optional[str] = None


class RunQueuedResponse(BaseModel):
    stage_id: str
    task_id: str
    status: str = "QUEUED"


class ResetRequest(BaseModel):
    clear_results: bool = True


class ResetResponse(BaseModel):
    post: str
    deployment_id: str
    started_at: str
