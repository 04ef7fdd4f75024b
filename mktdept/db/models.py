from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from mktdept.schemas.project import PostMeta, PostStatus, ProjectSettings

PROJECT_FILE = ".project"
SETTINGS_FILE = ".project-settings.json"
PIPELINE_FILE = ".pipeline.json"
POSTS_DIR = "posts"


@dataclass
class Post:
    name: str
    markdown_path: Path
    meta: PostMeta = field(default_factory=PostMeta)

    @property
    def posts_dir(self) -> Path:
        return self.markdown_path.parent

    @property
    def metadata_path(self) -> Path:
        return self.posts_dir / f"{self.name}.json"

    @property
    def execution_path(self) -> Path:
        return self.posts_dir / f"{self.name}-pipeline.json"

    @property
    def transforms_path(self) -> Path:
        return self.posts_dir / f"{self.name}-transforms.json"

    @property
    def title(self) -> str:
        return self.meta.title or self.name

    @property
    def status(self) -> PostStatus:
        return self.meta.status

    @property
    def is_draft(self) -> bool:
        return self.meta.status == PostStatus.DRAFT

    def read_content(self) -> str:
        if not self.markdown_path.exists():
            return ""
        return self.markdown_path.read_text(encoding="utf-8")


@dataclass
class Project:
    name: str
    path: Path
    title: str
    settings: ProjectSettings = field(default_factory=ProjectSettings)
    posts: List[Post] = field(default_factory=list)

    @property
    def posts_dir(self) -> Path:
        return self.path / POSTS_DIR

    @property
    def pipeline_path(self) -> Path:
        return self.path / PIPELINE_FILE

    @property
    def settings_path(self) -> Path:
        return self.path / SETTINGS_FILE

    @property
    def web_export_dir(self) -> Path:
        export_dir = Path(self.settings.web_export_directory or "./public")
        if not export_dir.is_absolute():
            export_dir = self.path / export_dir
        return export_dir.resolve()

    def post(self, name: str) -> Optional[Post]:
        return next((p for p in self.posts if p.name == name), None)

    def published_posts(self) -> List[Post]:
        """Posts that appear on tag and listing pages."""
        return [p for p in self.posts if not p.is_draft]
