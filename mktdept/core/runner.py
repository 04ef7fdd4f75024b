"""Caller-side sequencing: run one stage for one post and persist its result.

A run has three steps. The status check and the IN_PROGRESS mark happen under
the post's lock; the stage itself runs without it; the result is written back
under the lock against a freshly loaded record so concurrent runs of other
stages for the same post are not lost.
"""
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

import httpx

from mktdept.core.config import Settings
from mktdept.core.engine import PipelineExecutionService
from mktdept.core.errors import (
    AiServiceError,
    ConfigurationError,
    StageBusyError,
    StageDisabledError,
    StageLockedError,
    StageNotFoundError,
)
from mktdept.core.workflow import StageStatus, StageType, is_dependent_stage, requires_transform
from mktdept.db.models import Post, Project
from mktdept.db.store import ProfileStore, ProjectStore, post_lock
from mktdept.schemas.pipeline import Pipeline, PipelineExecution, PipelineStage, StageResult
from mktdept.schemas.project import PlatformTransform

log = logging.getLogger(__name__)


@dataclass
class StageStatusView:
    stage: PipelineStage
    status: StageStatus
    result: Optional[StageResult]


class PipelineRunner:
    def __init__(self, store: ProjectStore, service: PipelineExecutionService):
        self.store = store
        self.service = service

    def get_status(self, project: Project, post_name: str) -> List[StageStatusView]:
        post = self.store.load_post(project, post_name)
        pipeline = self.store.load_pipeline(project)
        execution = self.store.load_or_start_execution(project, post.name, pipeline)
        return [
            StageStatusView(
                stage=stage,
                status=self.service.effective_status(stage, pipeline, execution, project, post),
                result=execution.get_stage_result(stage.id),
            )
            for stage in pipeline.sorted_stages()
        ]

    def reset(self, project: Project, post_name: str, clear_results: bool = True) -> PipelineExecution:
        post = self.store.load_post(project, post_name)
        pipeline = self.store.load_pipeline(project)
        with post_lock(project, post.name):
            execution = self.store.load_or_start_execution(project, post.name, pipeline)
            execution.pipeline_id = pipeline.id
            execution.reset(clear_results)
            self.store.save_execution(project, execution)
        log.info("Started new deployment %s", execution.deployment_id,
                 extra={"post": post.name, "stage": "-"})
        return execution

    async def run_stage(self, project: Project, post_name: str, stage_id: str) -> StageResult:
        post = self.store.load_post(project, post_name)
        pipeline = self.store.load_pipeline(project)
        stage = pipeline.stage_by_id(stage_id)
        if stage is None:
            raise StageNotFoundError(f"Stage not found: {stage_id}")

        working = self._begin(project, post, pipeline, stage)
        ctx = {"post": post.name, "stage": stage.id}
        log.info("Running stage %s", stage.type.value, extra=ctx)

        try:
            result = await self._execute(project, post, working, stage)
        except Exception as e:
            log.exception("Stage crashed", extra=ctx)
            result = StageResult.failed(f"Unexpected error: {e}")

        result = self._finish(project, post, pipeline, stage, working, result)
        log.info("Stage finished with %s", result.status.value, extra=ctx)
        return result

    def _begin(self, project: Project, post: Post, pipeline: Pipeline, stage: PipelineStage) -> PipelineExecution:
        with post_lock(project, post.name):
            execution = self.store.load_or_start_execution(project, post.name, pipeline)
            if not stage.enabled:
                raise StageDisabledError(f"Stage is disabled: {stage.id}")

            status = self.service.effective_status(stage, pipeline, execution, project, post)
            if status == StageStatus.IN_PROGRESS:
                raise StageBusyError(f"Stage already in progress: {stage.id}")
            # a stored result does not bypass the gate on a re-run
            if status == StageStatus.LOCKED or (
                is_dependent_stage(stage.type)
                and not self.service.are_gatekeepers_complete(pipeline, execution, project, post)
            ):
                raise StageLockedError(f"Gatekeeper stages must complete before {stage.id}")

            execution.pipeline_id = pipeline.id
            execution.set_stage_result(stage.id, StageResult.in_progress())
            self.store.save_execution(project, execution)
            return execution.model_copy(deep=True)

    def _finish(
        self,
        project: Project,
        post: Post,
        pipeline: Pipeline,
        stage: PipelineStage,
        working: PipelineExecution,
        result: StageResult,
    ) -> StageResult:
        """Persist the result; returns what was actually stored."""
        with post_lock(project, post.name):
            execution = self.store.load_or_start_execution(project, post.name, pipeline)
            if stage.type == StageType.WEB_EXPORT:
                execution.verification_code = working.verification_code
                execution.verified_url = working.verified_url
            execution.set_stage_result(stage.id, result)
            try:
                self.store.save_execution(project, execution)
                return result
            except OSError as e:
                log.error("Could not save stage result: %s", e, extra={"post": post.name, "stage": stage.id})
                # a second failure propagates and leaves the stage IN_PROGRESS until reset
                result = StageResult.failed(f"Could not save result: {e}")
                execution.set_stage_result(stage.id, result)
                self.store.save_execution(project, execution)
                return result

    async def _execute(
        self, project: Project, post: Post, execution: PipelineExecution, stage: PipelineStage
    ) -> StageResult:
        service = self.service
        if stage.type == StageType.WEB_EXPORT:
            return await asyncio.to_thread(service.execute_web_export, project, post, execution)
        if stage.type == StageType.URL_VERIFY:
            return await asyncio.to_thread(service.execute_url_verify, project, post, execution, stage)

        not_ready = service.check_stage_ready(project, post, stage)
        if not_ready is not None:
            return not_ready

        try:
            content = await self._transformed_content(project, post, execution, stage)
        except (ConfigurationError, AiServiceError, httpx.HTTPError) as e:
            log.error("Transform failed: %s", e, extra={"post": post.name, "stage": stage.id})
            return StageResult.failed(f"Transform failed: {e}")
        if content is None:
            return StageResult.failed("Transform failed: AI returned no content")

        if stage.type == StageType.GETLATE:
            return await service.execute_social_publish(project, post, execution, stage, content)
        if stage.type == StageType.DEV_TO:
            return await service.execute_devto_publish(project, post, execution, stage, content)
        if stage.type == StageType.FACEBOOK_COPY_PASTA:
            return service.execute_copy_paste(project, post, execution, stage, content)
        if stage.type == StageType.HACKER_NEWS_EXPORT:
            return await asyncio.to_thread(
                service.execute_hacker_news_export, project, post, execution, stage, content
            )
        return StageResult.failed(f"Unsupported stage type: {stage.type}")

    async def _transformed_content(
        self, project: Project, post: Post, execution: PipelineExecution, stage: PipelineStage
    ) -> Optional[str]:
        """Cached transform for the stage's destination, generating and caching it when missing."""
        if not requires_transform(stage.type):
            return post.read_content()

        key = stage.cache_key()
        cached = self.store.load_transform(project, post.name, key)
        if cached is not None and cached.text.strip():
            log.info("Using cached transform %s", key, extra={"post": post.name, "stage": stage.id})
            return cached.text

        text = await self.service.generate_transform_with_url(project, post, stage, execution.verified_url)
        if not text or not text.strip():
            return None
        self.store.save_transform(project, post.name, key, PlatformTransform(text=text))
        return text


def build_runner(settings: Settings) -> PipelineRunner:
    store = ProjectStore(settings.projects_dir)
    service = PipelineExecutionService(settings, store, ProfileStore(settings.profiles_path))
    return PipelineRunner(store, service)
