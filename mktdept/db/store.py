"""File-backed persistence for projects, posts, pipelines and execution records.

Every record is one JSON object per file. Writes go through a temp file and
``os.replace`` so a crash never leaves a half-written record behind.
"""
from __future__ import annotations
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from mktdept.core.errors import PostNotFoundError, ProjectNotFoundError
from mktdept.db.models import POSTS_DIR, PROJECT_FILE, SETTINGS_FILE, Post, Project
from mktdept.schemas.pipeline import Pipeline, PipelineExecution
from mktdept.schemas.project import (
    PlatformTransform,
    PostMeta,
    ProjectSettings,
    PublishingProfile,
    WebTransform,
)

log = logging.getLogger(__name__)

WEB_TRANSFORM_KEY = "web"

_locks: Dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def post_lock(project: Project, post_name: str) -> threading.Lock:
    """Process-wide lock guarding one post's execution record."""
    key = str((project.posts_dir / post_name).resolve())
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.Lock()
        return lock


def read_json(path: Path) -> Optional[Dict[str, Any]]:
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        log.warning("Unreadable JSON file %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        log.warning("Expected a JSON object in %s", path)
        return None
    return data


def write_json(path: Path, data: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2)
            fh.write("\n")
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


class ProjectStore:
    def __init__(self, root: Path | str):
        self.root = Path(root)

    def list_projects(self) -> List[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.name for p in self.root.iterdir() if (p / PROJECT_FILE).is_file())

    def create_project(self, name: str, title: str) -> Project:
        path = self.root / name
        if path.exists() and any(path.iterdir()) and not (path / PROJECT_FILE).exists():
            raise FileExistsError(f"Folder is not empty and is not an existing project: {path}")
        (path / POSTS_DIR).mkdir(parents=True, exist_ok=True)
        write_json(path / PROJECT_FILE, {"title": title})
        return Project(name=name, path=path, title=title)

    def load_project(self, name: str) -> Project:
        path = self.root / name
        data = read_json(path / PROJECT_FILE)
        if data is None:
            raise ProjectNotFoundError(f"Not a valid project folder: {path}")
        project = Project(
            name=name,
            path=path,
            title=data.get("title") or name,
            settings=self.load_settings(path),
        )
        project.posts = self._load_posts(project)
        return project

    def load_settings(self, project_path: Path) -> ProjectSettings:
        data = read_json(project_path / SETTINGS_FILE)
        if data is None:
            return ProjectSettings()
        try:
            return ProjectSettings.model_validate(data)
        except ValidationError as e:
            log.warning("Invalid project settings in %s: %s", project_path, e)
            return ProjectSettings()

    def save_settings(self, project: Project) -> None:
        write_json(project.settings_path, project.settings.to_dict())

    def _load_posts(self, project: Project) -> List[Post]:
        if not project.posts_dir.is_dir():
            return []
        posts = []
        for md_file in sorted(project.posts_dir.glob("*.md")):
            name = md_file.stem
            meta = self._load_post_meta(project.posts_dir / f"{name}.json", name)
            posts.append(Post(name=name, markdown_path=md_file, meta=meta))
        return posts

    def _load_post_meta(self, path: Path, name: str) -> PostMeta:
        data = read_json(path)
        if data is None:
            return PostMeta(title=name)
        try:
            meta = PostMeta.model_validate(data)
        except ValidationError as e:
            log.warning("Invalid post metadata in %s: %s", path, e)
            return PostMeta(title=name)
        if not meta.title:
            meta.title = name
        return meta

    def load_post(self, project: Project, name: str) -> Post:
        post = project.post(name)
        if post is None:
            raise PostNotFoundError(f"Post not found: {name}")
        return post

    def create_post(self, project: Project, name: str, title: str, content: str = "") -> Post:
        project.posts_dir.mkdir(parents=True, exist_ok=True)
        post = Post(name=name, markdown_path=project.posts_dir / f"{name}.md", meta=PostMeta(title=title))
        post.markdown_path.write_text(content or f"# {title}\n\n", encoding="utf-8")
        self.save_post_meta(post)
        project.posts.append(post)
        return post

    def save_post_meta(self, post: Post) -> None:
        write_json(post.metadata_path, post.meta.to_dict())

    # pipeline definition

    def load_pipeline(self, project: Project) -> Pipeline:
        data = read_json(project.pipeline_path)
        if data is None:
            return Pipeline.create_default()
        try:
            return Pipeline.model_validate(data)
        except ValidationError as e:
            log.warning("Invalid pipeline in %s, using default: %s", project.path, e)
            return Pipeline.create_default()

    def save_pipeline(self, project: Project, pipeline: Pipeline) -> None:
        write_json(project.pipeline_path, pipeline.to_dict())

    # per-post execution record

    def load_execution(self, project: Project, post_name: str) -> Optional[PipelineExecution]:
        data = read_json(project.posts_dir / f"{post_name}-pipeline.json")
        if data is None:
            return None
        try:
            return PipelineExecution.model_validate(data)
        except ValidationError as e:
            log.warning("Invalid execution record for %s: %s", post_name, e,
                        extra={"post": post_name, "stage": "-"})
            return None

    def load_or_start_execution(self, project: Project, post_name: str, pipeline: Pipeline) -> PipelineExecution:
        execution = self.load_execution(project, post_name)
        if execution is None:
            execution = PipelineExecution.start(post_name, pipeline.id)
        return execution

    def save_execution(self, project: Project, execution: PipelineExecution) -> None:
        write_json(project.posts_dir / f"{execution.post_name}-pipeline.json", execution.to_dict())

    # transform cache

    def _load_transform_file(self, project: Project, post_name: str) -> Dict[str, Any]:
        return read_json(project.posts_dir / f"{post_name}-transforms.json") or {}

    def _save_transform_file(self, project: Project, post_name: str, data: Dict[str, Any]) -> None:
        write_json(project.posts_dir / f"{post_name}-transforms.json", data)

    def load_transforms(self, project: Project, post_name: str) -> Dict[str, PlatformTransform]:
        transforms = {}
        for key, value in self._load_transform_file(project, post_name).items():
            if key == WEB_TRANSFORM_KEY or not isinstance(value, dict):
                continue
            try:
                transforms[key] = PlatformTransform.model_validate(value)
            except ValidationError:
                log.warning("Skipping invalid transform %s for %s", key, post_name,
                            extra={"post": post_name, "stage": "-"})
        return transforms

    def load_transform(self, project: Project, post_name: str, key: str) -> Optional[PlatformTransform]:
        return self.load_transforms(project, post_name).get(key)

    def save_transform(self, project: Project, post_name: str, key: str, transform: PlatformTransform) -> None:
        data = self._load_transform_file(project, post_name)
        data[key] = transform.to_dict()
        self._save_transform_file(project, post_name, data)

    def load_web_transform(self, project: Project, post_name: str) -> Optional[WebTransform]:
        value = self._load_transform_file(project, post_name).get(WEB_TRANSFORM_KEY)
        if not isinstance(value, dict):
            return None
        try:
            return WebTransform.model_validate(value)
        except ValidationError:
            return None

    def save_web_transform(self, project: Project, post_name: str, transform: WebTransform) -> None:
        data = self._load_transform_file(project, post_name)
        data[WEB_TRANSFORM_KEY] = transform.to_dict()
        self._save_transform_file(project, post_name, data)


class ProfileStore:
    """Publishing profiles shared by every project (``profiles.json``)."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load_all(self) -> List[PublishingProfile]:
        data = read_json(self.path) or {}
        profiles = []
        for item in data.get("profiles", []):
            try:
                profiles.append(PublishingProfile.model_validate(item))
            except ValidationError as e:
                log.warning("Skipping invalid publishing profile: %s", e)
        return profiles

    def get(self, profile_id: Optional[str]) -> Optional[PublishingProfile]:
        if not profile_id:
            return None
        return next((p for p in self.load_all() if p.id == profile_id), None)

    def save_all(self, profiles: List[PublishingProfile]) -> None:
        write_json(self.path, {"profiles": [p.to_dict() for p in profiles]})
