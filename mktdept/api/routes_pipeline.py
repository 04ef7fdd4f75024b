from fastapi import APIRouter, Depends, HTTPException

from mktdept.core.config import get_settings
from mktdept.core.errors import (
    PostNotFoundError,
    ProjectNotFoundError,
    StageBusyError,
    StageDisabledError,
    StageLockedError,
    StageNotFoundError,
)
from mktdept.core.runner import PipelineRunner, build_runner
from mktdept.core.workflow import display_name, status_symbol
from mktdept.db.models import Project
from mktdept.schemas.status import (
    PipelineResponse,
    PostStatusResponse,
    ResetRequest,
    ResetResponse,
    RunQueuedResponse,
    StageInfo,
    StageResultResponse,
    StageStatusResponse,
)
from mktdept.tasks.pipeline import run_pipeline_stage

router = APIRouter(prefix="/projects")


def get_runner() -> PipelineRunner:
    return build_runner(get_settings())


def _load_project(runner: PipelineRunner, name: str) -> Project:
    try:
        return runner.store.load_project(name)
    except ProjectNotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")


def _check_post(runner: PipelineRunner, project: Project, post: str) -> None:
    try:
        runner.store.load_post(project, post)
    except PostNotFoundError:
        raise HTTPException(status_code=404, detail="Post not found")


@router.get("/{project}/pipeline", response_model=PipelineResponse)
def list_pipeline(project: str, runner: PipelineRunner = Depends(get_runner)):
    proj = _load_project(runner, project)
    pipeline = runner.store.load_pipeline(proj)
    return PipelineResponse(
        project=project,
        id=pipeline.id,
        name=pipeline.name,
        stages=[
            StageInfo(
                id=s.id,
                type=s.type,
                display_name=display_name(s.type),
                order=s.order,
                enabled=s.enabled,
                profile_id=s.profile_id,
                platform_hint=s.platform_hint,
                cache_key=s.cache_key(),
                settings=s.stage_settings,
            )
            for s in pipeline.sorted_stages()
        ],
    )


@router.get("/{project}/posts/{post}/status", response_model=PostStatusResponse)
def get_status(project: str, post: str, runner: PipelineRunner = Depends(get_runner)):
    proj = _load_project(runner, project)
    _check_post(runner, proj, post)
    views = runner.get_status(proj, post)
    return PostStatusResponse(
        project=project,
        post=post,
        stages=[
            StageStatusResponse(
                id=v.stage.id,
                type=v.stage.type,
                display_name=display_name(v.stage.type),
                status=v.status,
                symbol=status_symbol(v.status),
                message=v.result.message if v.result else None,
                published_url=v.result.published_url if v.result else None,
                completed_at=v.result.completed_at if v.result else None,
            )
            for v in views
        ],
    )


@router.post("/{project}/posts/{post}/stages/{stage_id}/run")
async def run_stage(
    project: str,
    post: str,
    stage_id: str,
    wait: bool = False,
    runner: PipelineRunner = Depends(get_runner),
):
    proj = _load_project(runner, project)
    _check_post(runner, proj, post)
    if runner.store.load_pipeline(proj).stage_by_id(stage_id) is None:
        raise HTTPException(status_code=404, detail="Stage not found")

    if not wait:
        task = run_pipeline_stage.delay(project, post, stage_id)
        return RunQueuedResponse(stage_id=stage_id, task_id=task.id)

    try:
        result = await runner.run_stage(proj, post, stage_id)
    except StageNotFoundError:
        raise HTTPException(status_code=404, detail="Stage not found")
    except (StageLockedError, StageBusyError, StageDisabledError) as e:
        raise HTTPException(status_code=409, detail=str(e))

    return StageResultResponse(
        stage_id=stage_id,
        status=result.status,
        message=result.message,
        published_url=result.published_url,
        completed_at=result.completed_at,
    )


@router.post("/{project}/posts/{post}/reset", response_model=ResetResponse)
def reset(project: str, post: str, req: ResetRequest | None = None,
          runner: PipelineRunner = Depends(get_runner)):
    proj = _load_project(runner, project)
    _check_post(runner, proj, post)
    execution = runner.reset(proj, post, clear_results=req.clear_results if req else True)
    return ResetResponse(post=post, deployment_id=execution.deployment_id, started_at=execution.started_at)
