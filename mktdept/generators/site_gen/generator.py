"""Static HTML export of posts."""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from mktdept.core.verification import build_full_url, embed_marker
from mktdept.db.models import Post, Project
from mktdept.generators.site_gen.render import PageRenderer, load_or_create_template, markdown_to_html
from mktdept.generators.site_gen.templates import POST_TEMPLATE
from mktdept.generators.site_gen.utils import (
    ensure_html_suffix,
    first_image,
    format_long_date,
    parse_date,
    read_time,
    site_name,
    slugify,
    strip_title_line,
    tag_slug,
    word_count,
)
from mktdept.schemas.project import WebTransform

log = logging.getLogger(__name__)


def resolve_uri(post: Post, web_transform: Optional[WebTransform]) -> str:
    uri = web_transform.uri if web_transform else ""
    if not uri or not uri.strip():
        return slugify(post.title)
    return ensure_html_suffix(uri)


def tag_links(project: Project, tags: List[str]) -> List[Dict[str, str]]:
    index_url = project.settings.tag_index_url()
    return [
        {"name": tag, "url": f"{index_url or ''}#{tag_slug(tag)}"}
        for tag in tags
    ]


def post_author(project: Project, post: Post) -> str:
    for candidate in (post.meta.author, project.settings.default_author):
        if candidate and candidate.strip():
            return candidate
    return "Anonymous"


class SiteGenerator:
    def __init__(self, renderer: PageRenderer | None = None):
        self.renderer = renderer or PageRenderer()

    def _template(self, project: Project) -> str:
        return load_or_create_template(project.path, project.settings.post_template, POST_TEMPLATE)

    def build_context(
        self,
        project: Project,
        post: Post,
        markdown_text: str,
        uri: str,
        verification_code: Optional[str] = None,
    ) -> Dict[str, Any]:
        author = post_author(project, post)
        description = post.meta.description
        if not description or not description.strip():
            description = f"{post.title} by {author}"

        body = strip_title_line(markdown_text)
        published_on = parse_date(post.meta.date)
        url_base = project.settings.url_base

        return {
            "title": post.title,
            "author": author,
            "description": description,
            "date": format_long_date(published_on),
            "date_iso": published_on.isoformat() if published_on else "",
            "read_time": read_time(body),
            "content": markdown_to_html(body),
            "tags": bool(post.meta.tags),
            "tags_comma_separated": ", ".join(post.meta.tags),
            "tags_list": tag_links(project, post.meta.tags),
            "url_base": url_base or "",
            "canonical_url": build_full_url(url_base, uri),
            "site_name": site_name(url_base),
            "og_image": first_image(body),
            "word_count": word_count(body),
            "verification_comment": embed_marker(verification_code) if verification_code else "",
        }

    def export(
        self,
        project: Project,
        post: Post,
        web_transform: Optional[WebTransform],
        verification_code: Optional[str] = None,
    ) -> Path:
        """Render a post to ``{export dir}/{uri}`` and return the written path."""
        uri = resolve_uri(post, web_transform)
        context = self.build_context(project, post, post.read_content(), uri, verification_code)
        html = self.renderer.render(self._template(project), context)
        return self._write(project, uri, html)

    def export_with_content(self, project: Project, post: Post, output_uri: str, content: str) -> Path:
        """Render alternate markdown (e.g. a transformed rewrite) under the post's template."""
        context = self.build_context(project, post, content, output_uri)
        html = self.renderer.render(self._template(project), context)
        return self._write(project, output_uri, html)

    def preview(self, project: Project, post: Post) -> str:
        uri = resolve_uri(post, None)
        context = self.build_context(project, post, post.read_content(), uri)
        return self.renderer.render(self._template(project), context)

    def _write(self, project: Project, uri: str, html: str) -> Path:
        export_dir = project.web_export_dir
        export_dir.mkdir(parents=True, exist_ok=True)
        output = export_dir / uri.lstrip("/")
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(html, encoding="utf-8")
        log.info("Exported %s", output)
        return output
