"""Shared fixtures: a throwaway project folder with one finished post."""
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from mktdept.core.config import Settings
from mktdept.core.engine import PipelineExecutionService
from mktdept.core.workflow import StageType
from mktdept.db.store import ProfileStore, ProjectStore
from mktdept.publishers.base import PublishResult
from mktdept.publishers.registry import PublisherRegistry
from mktdept.schemas.pipeline import Pipeline, PipelineStage
from mktdept.schemas.project import PostStatus, PublishingProfile

POST_BODY = """# Hello World

First post body with **bold** text.

![cover](https://cdn.example.com/cover.png)
"""


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        projects_dir=str(tmp_path / "projects"),
        settings_dir=str(tmp_path / "settings"),
        grok_api_key="test-grok-key",
        getlate_api_key="test-getlate-key",
        devto_api_key="test-devto-key",
    )


@pytest.fixture
def store(settings):
    return ProjectStore(settings.projects_dir)


@pytest.fixture
def profiles(settings):
    profile_store = ProfileStore(settings.profiles_path)
    profile_store.save_all([
        PublishingProfile(
            id="li-main",
            name="LinkedIn Main",
            platform="linkedin",
            get_late_account_id="acc-1",
            settings={"includeUrl": "true", "urlPlacement": "end"},
        ),
        PublishingProfile(id="x-main", name="X", platform="twitter", get_late_account_id="acc-2"),
    ])
    return profile_store


@pytest.fixture
def project(store):
    proj = store.create_project("blog", "My Blog")
    (proj.path / ".project-settings.json").write_text(json.dumps({
        "urlBase": "https://example.com",
        "defaultAuthor": "Ada",
    }))
    post = store.create_post(proj, "hello-world", "Hello World", POST_BODY)
    post.meta.tags = ["Python", "Static Sites"]
    post.meta.status = PostStatus.FINISHED
    post.meta.date = "2024-03-05"
    store.save_post_meta(post)
    store.create_post(proj, "draft-post", "Draft Post", "# Draft Post\n\nNot ready.\n")
    return store.load_project("blog")


@pytest.fixture
def pipeline(store, project):
    pipe = Pipeline.create_default()
    pipe.add_stage(PipelineStage.create(StageType.GETLATE, profile_id="li-main"))
    store.save_pipeline(project, pipe)
    return store.load_pipeline(project)


@pytest.fixture
def ai_service():
    service = MagicMock()
    service.is_configured.return_value = True
    service.transform_content = AsyncMock(return_value="Transformed for LinkedIn")
    return service


@pytest.fixture
def publisher():
    pub = MagicMock()
    pub.name = "getlate"
    pub.is_configured.return_value = True
    pub.publish = AsyncMock(return_value=PublishResult(True, "Published successfully", "https://linkedin.com/p/1"))
    return pub


@pytest.fixture
def service(settings, store, profiles, ai_service, publisher):
    ai_factory = MagicMock()
    ai_factory.get.return_value = ai_service
    return PipelineExecutionService(
        settings,
        store,
        profiles,
        ai_factory=ai_factory,
        publishers=PublisherRegistry(mapping={"linkedin": publisher, "twitter": publisher}),
    )
