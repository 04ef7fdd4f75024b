"""Tests for pipeline definitions and per-post execution state."""
import random

import pytest

from mktdept.core.errors import DuplicateStageError
from mktdept.core.prompts import DEVTO_PROMPT, GENERIC_SOCIAL_PROMPT, HACKER_NEWS_PROMPT, LINKEDIN_PROMPT
from mktdept.core.workflow import StageStatus, StageType
from mktdept.schemas.pipeline import Pipeline, PipelineExecution, PipelineStage, StageResult


def _orders(pipeline):
    return [s.order for s in pipeline.sorted_stages()]


def test_create_default_pipeline():
    pipeline = Pipeline.create_default()
    stages = pipeline.sorted_stages()
    assert [s.id for s in stages] == ["web-export", "url-verify"]
    assert [s.type for s in stages] == [StageType.WEB_EXPORT, StageType.URL_VERIFY]
    assert stages[1].get_setting("requireCodeMatch") == "true"
    assert _orders(pipeline) == [0, 1]


def test_order_stays_contiguous_across_adds_and_removes():
    rng = random.Random(42)
    pipeline = Pipeline.create_default()
    types = [StageType.GETLATE, StageType.DEV_TO, StageType.FACEBOOK_COPY_PASTA, StageType.HACKER_NEWS_EXPORT]
    for step in range(60):
        if pipeline.stages and rng.random() < 0.4:
            victim = rng.choice(pipeline.stages)
            assert pipeline.remove_stage(victim.id if step % 2 else victim)
        else:
            pipeline.add_stage(PipelineStage.create(rng.choice(types), order=rng.randint(0, 99)))
        assert _orders(pipeline) == list(range(len(pipeline.stages)))


def test_remove_unknown_stage_returns_false():
    pipeline = Pipeline.create_default()
    assert not pipeline.remove_stage("nope")
    assert _orders(pipeline) == [0, 1]


def test_move_stage_renumbers():
    pipeline = Pipeline.create_default()
    pipeline.add_stage(PipelineStage.create(StageType.GETLATE, profile_id="li-main"))
    pipeline.move_stage("getlate-li-main", 0)
    assert [s.id for s in pipeline.sorted_stages()] == ["getlate-li-main", "web-export", "url-verify"]
    assert _orders(pipeline) == [0, 1, 2]


def test_duplicate_stage_id_rejected():
    pipeline = Pipeline.create_default()
    pipeline.add_stage(PipelineStage.create(StageType.GETLATE, profile_id="li-main"))
    with pytest.raises(DuplicateStageError):
        pipeline.add_stage(PipelineStage.create(StageType.GETLATE, profile_id="li-main"))
    with pytest.raises(ValueError):
        pipeline.add_stage(PipelineStage.create(StageType.GETLATE, profile_id="li-main"))


def test_cache_key_is_deterministic_across_pipelines():
    first = PipelineStage.create(StageType.GETLATE, profile_id="li-main")
    second = PipelineStage.create(StageType.GETLATE, profile_id="li-main")
    other = PipelineStage.create(StageType.GETLATE, profile_id="x-main")
    assert first.cache_key() == second.cache_key() == "getlate-li-main"
    assert first.cache_key() != other.cache_key()


def test_cache_key_ignores_random_id_of_loaded_stage():
    stage = PipelineStage.model_validate({"id": "5b0c6d1e", "type": "GETLATE", "profileId": "li-main"})
    assert stage.id == "5b0c6d1e"
    assert stage.cache_key() == "getlate-li-main"


def test_cache_key_falls_back_to_id():
    gatekeeper = PipelineStage.create(StageType.WEB_EXPORT)
    no_profile = PipelineStage.create(StageType.HACKER_NEWS_EXPORT)
    assert gatekeeper.cache_key() == gatekeeper.id
    assert no_profile.cache_key() == no_profile.id


def test_effective_prompt():
    explicit = PipelineStage.create(StageType.GETLATE, platform_hint="linkedin")
    explicit.prompt = "Write a haiku"
    assert explicit.effective_prompt() == "Write a haiku"

    assert PipelineStage.create(StageType.GETLATE, platform_hint="LinkedIn").effective_prompt() == LINKEDIN_PROMPT
    assert PipelineStage.create(StageType.GETLATE, platform_hint="hn").effective_prompt() == HACKER_NEWS_PROMPT
    assert PipelineStage.create(StageType.GETLATE, platform_hint="friendster").effective_prompt() == GENERIC_SOCIAL_PROMPT
    assert PipelineStage.create(StageType.DEV_TO).effective_prompt() == DEVTO_PROMPT
    assert PipelineStage.create(StageType.WEB_EXPORT).effective_prompt() == ""


def test_blank_prompt_uses_default():
    stage = PipelineStage.create(StageType.GETLATE, platform_hint="linkedin")
    stage.prompt = "   "
    assert stage.effective_prompt() == LINKEDIN_PROMPT


def test_setting_accessors_and_options():
    stage = PipelineStage.create(StageType.DEV_TO)
    assert stage.get_setting_bool("published", True) is True
    stage.set_setting("published", "TRUE")
    assert stage.get_setting_bool("published", False) is True
    stage.set_setting("published", "yes")
    assert stage.get_setting_bool("published", True) is False
    stage.set_setting("includeCanonical", False)
    assert stage.stage_settings["includeCanonical"] == "false"

    options = stage.options
    assert options.published is False
    assert options.include_canonical is False
    assert options.require_code_match is True
    assert options.url_placement == "end"


def test_load_migrates_legacy_and_drops_unknown_types():
    pipeline = Pipeline.model_validate({
        "id": "p1",
        "name": "Legacy",
        "stages": [
            {"id": "b", "type": "TWITTER", "order": 2},
            {"id": "a", "type": "LINKEDIN", "order": 1, "stageSettings": {"includeUrl": True}},
            {"id": "c", "type": "MYSPACE", "order": 3},
        ],
    })
    assert [s.id for s in pipeline.stages] == ["a", "b"]
    assert all(s.type == StageType.GETLATE for s in pipeline.stages)
    assert pipeline.stages[0].get_setting("includeUrl") == "true"


def test_load_renumbers_order_after_dropping_unknown_type():
    pipeline = Pipeline.model_validate({
        "stages": [
            {"id": "web-export", "type": "WEB_EXPORT", "order": 0},
            {"id": "old", "type": "INSTAGRAM_OLD", "order": 1},
            {"id": "url-verify", "type": "URL_VERIFY", "order": 2},
        ],
    })
    assert [s.id for s in pipeline.stages] == ["web-export", "url-verify"]
    assert _orders(pipeline) == [0, 1]
    assert [s["order"] for s in pipeline.to_dict()["stages"]] == [0, 1]


def test_load_drops_duplicate_stage_ids():
    pipeline = Pipeline.model_validate({
        "stages": [
            {"id": "a", "type": "WEB_EXPORT", "order": 0},
            {"id": "a", "type": "URL_VERIFY", "order": 1},
        ],
    })
    assert len(pipeline.stages) == 1
    assert pipeline.stages[0].id == "a"
    assert pipeline.stages[0].type == StageType.WEB_EXPORT
    assert _orders(pipeline) == [0]


def test_pipeline_serializes_camel_case_in_order():
    pipeline = Pipeline.create_default()
    pipeline.add_stage(PipelineStage.create(StageType.GETLATE, profile_id="li-main", platform_hint="linkedin"))
    data = pipeline.to_dict()
    assert [s["id"] for s in data["stages"]] == ["web-export", "url-verify", "getlate-li-main"]
    social = data["stages"][2]
    assert social["profileId"] == "li-main"
    assert social["platformHint"] == "linkedin"
    assert "prompt" not in social
    assert "stageSettings" not in social
    assert data["stages"][1]["stageSettings"] == {"requireCodeMatch": "true"}


def test_stage_result_factories():
    assert StageResult.pending().completed_at is None
    assert StageResult.in_progress().message == "Executing..."
    done = StageResult.completed("ok", "https://example.com/a.html")
    assert done.completed_at.endswith("Z")
    assert done.is_complete and done.is_terminal
    warned = StageResult.warning("stale")
    assert warned.is_complete
    failed = StageResult.failed("nope")
    assert failed.is_terminal and not failed.is_complete


def _gated_pipeline():
    pipeline = Pipeline(name="Gated")
    pipeline.add_stage(PipelineStage.create(StageType.WEB_EXPORT))
    pipeline.add_stage(PipelineStage.create(StageType.URL_VERIFY))
    pipeline.add_stage(PipelineStage.create(StageType.GETLATE, profile_id="li-main"))
    return pipeline


def test_social_stage_locked_until_every_gatekeeper_completes():
    pipeline = _gated_pipeline()
    g1, g2, social = pipeline.sorted_stages()
    execution = PipelineExecution.start("hello-world", pipeline.id)

    assert execution.effective_status(social, pipeline) == StageStatus.LOCKED
    assert execution.effective_status(g1, pipeline) == StageStatus.PENDING

    execution.set_stage_result(g1.id, StageResult.completed("exported"))
    assert execution.effective_status(social, pipeline) == StageStatus.LOCKED

    execution.set_stage_result(g2.id, StageResult.failed("404"))
    assert execution.effective_status(social, pipeline) == StageStatus.LOCKED

    execution.set_stage_result(g2.id, StageResult.warning("no code"))
    assert execution.gatekeepers_complete(pipeline)
    assert execution.effective_status(social, pipeline) == StageStatus.PENDING


def test_stored_result_is_returned_verbatim():
    pipeline = _gated_pipeline()
    social = pipeline.sorted_stages()[2]
    execution = PipelineExecution.start("hello-world", pipeline.id)
    execution.set_stage_result(social.id, StageResult.failed("boom"))
    assert execution.effective_status(social, pipeline) == StageStatus.FAILED


def test_rerun_overwrites_result():
    execution = PipelineExecution.start("hello-world", "p1")
    execution.set_stage_result("web-export", StageResult.failed("disk full"))
    execution.set_stage_result("web-export", StageResult.completed("exported"))
    assert list(execution.stage_results) == ["web-export"]
    assert execution.get_stage_result("web-export").status == StageStatus.COMPLETED


def test_reset_starts_new_deployment():
    execution = PipelineExecution.start("hello-world", "p1")
    execution.verified_url = "https://example.com/hello-world.html"
    execution.verification_code = "ab12cd34"
    execution.set_stage_result("web-export", StageResult.completed("exported"))
    old_deployment = execution.deployment_id

    execution.reset(clear_results=False)
    assert execution.deployment_id != old_deployment
    assert execution.verified_url is None and execution.verification_code is None
    assert "web-export" in execution.stage_results

    execution.reset()
    assert execution.stage_results == {}


def test_execution_round_trips_persisted_field_names():
    execution = PipelineExecution.start("hello-world", "p1")
    execution.verified_url = "https://example.com/hello-world.html"
    execution.set_stage_result("web-export", StageResult.completed("exported", execution.verified_url))
    data = execution.to_dict()
    assert set(data) >= {"postName", "pipelineId", "deploymentId", "startedAt", "verifiedUrl", "stageResults"}
    assert data["stageResults"]["web-export"]["publishedUrl"] == execution.verified_url

    loaded = PipelineExecution.model_validate(data)
    assert loaded.deployment_id == execution.deployment_id
    assert loaded.get_stage_result("web-export").status == StageStatus.COMPLETED


def test_unknown_persisted_status_loads_as_pending():
    loaded = PipelineExecution.model_validate({
        "postName": "p",
        "deploymentId": None,
        "stageResults": {"x": {"status": "EXPLODED"}},
    })
    assert loaded.deployment_id
    assert loaded.get_stage_result("x").status == StageStatus.PENDING


def test_stage_queries():
    pipeline = _gated_pipeline()
    social = pipeline.sorted_stages()[2]
    social.enabled = False
    assert [s.type for s in pipeline.gatekeeper_stages()] == [StageType.WEB_EXPORT, StageType.URL_VERIFY]
    assert pipeline.social_stages() == [social]
    assert social not in pipeline.enabled_stages()
    assert pipeline.has_stage_of_type(StageType.GETLATE)
    assert not pipeline.has_stage_of_type(StageType.DEV_TO)
    assert pipeline.stage_by_id("missing") is None
