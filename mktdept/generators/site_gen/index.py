"""Tag index and paginated listing pages for all published posts."""
from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from mktdept.core.verification import build_full_url
from mktdept.db.models import Post, Project
from mktdept.db.store import ProjectStore
from mktdept.generators.site_gen.generator import post_author, resolve_uri, tag_links
from mktdept.generators.site_gen.render import PageRenderer, load_or_create_template
from mktdept.generators.site_gen.templates import LISTING_TEMPLATE, TAG_INDEX_TEMPLATE
from mktdept.generators.site_gen.utils import format_short_date, parse_date, read_time, site_name, tag_slug
from mktdept.schemas.project import TAG_INDEX_FILE

log = logging.getLogger(__name__)


@dataclass
class IndexExportResult:
    tag_index_path: Optional[str] = None
    tag_count: int = 0
    listing_pages: List[str] = field(default_factory=list)
    total_posts: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def summary(self) -> str:
        lines = []
        if self.tag_index_path:
            lines.append(f"Tag index exported ({self.tag_count} tags)")
        if self.listing_pages:
            lines.append(f"Listing pages exported ({len(self.listing_pages)} pages, {self.total_posts} posts)")
        if self.errors:
            lines.append("Errors: " + "; ".join(self.errors))
        return "\n".join(lines)


def _newest_first(posts: List[Post]) -> List[Post]:
    dated = [p for p in posts if parse_date(p.meta.date)]
    undated = [p for p in posts if not parse_date(p.meta.date)]
    dated.sort(key=lambda p: parse_date(p.meta.date) or date.min, reverse=True)
    return dated + undated


class IndexExporter:
    def __init__(self, store: ProjectStore, renderer: PageRenderer | None = None):
        self.store = store
        self.renderer = renderer or PageRenderer()

    def _post_url(self, project: Project, post: Post) -> str:
        uri = resolve_uri(post, self.store.load_web_transform(project, post.name))
        return build_full_url(project.settings.url_base, uri) or uri

    def export_all(self, project: Project, posts: List[Post]) -> IndexExportResult:
        result = IndexExportResult(total_posts=len(posts))
        try:
            path = self.export_tag_index(project, posts)
            if path is not None:
                result.tag_index_path = path.name
                result.tag_count = len({t.lower() for p in posts for t in p.meta.tags})
        except OSError as e:
            result.errors.append(f"Tag index export failed: {e}")
        try:
            result.listing_pages = [p.name for p in self.export_listing_pages(project, posts)]
        except OSError as e:
            result.errors.append(f"Listing export failed: {e}")
        return result

    def export_tag_index(self, project: Project, posts: List[Post]) -> Optional[Path]:
        settings = project.settings
        if not settings.tag_index_template:
            return None
        template = load_or_create_template(project.path, settings.tag_index_template, TAG_INDEX_TEMPLATE)

        by_tag: Dict[str, List[Post]] = {}
        names: Dict[str, str] = {}
        for post in posts:
            for tag in post.meta.tags:
                key = tag.lower()
                names.setdefault(key, tag)
                by_tag.setdefault(key, []).append(post)

        tags_list = []
        for key in sorted(by_tag):
            tagged = by_tag[key]
            tags_list.append({
                "name": names[key],
                "slug": tag_slug(names[key]),
                "post_count": len(tagged),
                "posts": [
                    {
                        "title": p.title,
                        "url": self._post_url(project, p),
                        "date": format_short_date(parse_date(p.meta.date)),
                    }
                    for p in tagged
                ],
            })

        html = self.renderer.render(template, {
            "site_name": site_name(settings.url_base),
            "listing_url": settings.listing_file_name(1),
            "tags_list": tags_list,
        })
        return self._write(project, TAG_INDEX_FILE, html)

    def export_listing_pages(self, project: Project, posts: List[Post]) -> List[Path]:
        settings = project.settings
        if not settings.listing_template:
            return []
        template = load_or_create_template(project.path, settings.listing_template, LISTING_TEMPLATE)

        ordered = _newest_first(posts)
        per_page = settings.posts_per_page
        total_pages = max(1, math.ceil(len(ordered) / per_page))
        name = settings.listing_file_name

        written = []
        for page in range(1, total_pages + 1):
            page_posts = ordered[(page - 1) * per_page:page * per_page]
            context: Dict[str, Any] = {
                "site_name": site_name(settings.url_base),
                "page_number": page,
                "total_pages": total_pages,
                "is_first_page": page == 1,
                "has_multiple_pages": total_pages > 1,
                "has_prev": page > 1,
                "has_next": page < total_pages,
                "prev_url": name(page - 1) if page > 1 else None,
                "next_url": name(page + 1) if page < total_pages else None,
                "canonical_url": build_full_url(settings.url_base, name(page)),
                "tag_index_url": settings.tag_index_url() or TAG_INDEX_FILE,
                "pages": [
                    {"number": n, "url": name(n), "is_current": n == page}
                    for n in range(1, total_pages + 1)
                ],
                "posts": [self._listing_entry(project, p) for p in page_posts],
            }
            written.append(self._write(project, name(page), self.renderer.render(template, context)))
        return written

    def _listing_entry(self, project: Project, post: Post) -> Dict[str, Any]:
        return {
            "title": post.title,
            "url": self._post_url(project, post),
            "author": post_author(project, post),
            "date": format_short_date(parse_date(post.meta.date)),
            "read_time": read_time(post.read_content()),
            "description": post.meta.description or "",
            "tags": tag_links(project, post.meta.tags),
        }

    def _write(self, project: Project, file_name: str, html: str) -> Path:
        export_dir = project.web_export_dir
        export_dir.mkdir(parents=True, exist_ok=True)
        output = export_dir / file_name
        output.write_text(html, encoding="utf-8")
        return output
