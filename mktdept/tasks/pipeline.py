from __future__ import annotations
import asyncio
import logging

from mktdept.core.config import get_settings
from mktdept.core.errors import PipelineError
from mktdept.core.runner import build_runner
from mktdept.tasks.celery_app import celery_app

log = logging.getLogger(__name__)


@celery_app.task(name="run_pipeline_stage")
def run_pipeline_stage(project: str, post: str, stage_id: str) -> dict:
    runner = build_runner(get_settings())
    try:
        proj = runner.store.load_project(project)
        log.info("Starting stage", extra={"post": post, "stage": stage_id})
        result = asyncio.run(runner.run_stage(proj, post, stage_id))
    except PipelineError as e:
        log.error("Stage rejected: %s", e, extra={"post": post, "stage": stage_id})
        return {"stage_id": stage_id, "status": "REJECTED", "message": str(e)}

    log.info("Stage finished with %s", result.status.value, extra={"post": post, "stage": stage_id})
    return {"stage_id": stage_id, **result.to_dict()}
