"""Template and markdown rendering for exported pages."""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict

import markdown
from jinja2 import Environment, StrictUndefined, TemplateSyntaxError, UndefinedError, select_autoescape

log = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "sane_lists"]


class RenderError(Exception):
    """Raised when a page template cannot be rendered."""


class PageRenderer:
    def __init__(self) -> None:
        self.env = Environment(
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=select_autoescape(default_for_string=True),
        )

    def render(self, template: str, context: Dict[str, Any]) -> str:
        try:
            return self.env.from_string(template).render(**context)
        except UndefinedError as e:
            raise RenderError(f"Missing variable in template: {e}") from e
        except TemplateSyntaxError as e:
            raise RenderError(f"Invalid template syntax: {e}") from e


def markdown_to_html(text: str) -> str:
    return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)


def load_or_create_template(project_path: Path, name: str, default: str) -> str:
    """Read a project template, writing the default first if the project has none."""
    path = project_path / name
    if not path.exists():
        log.info("Creating default template %s", path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(default, encoding="utf-8")
        return default
    return path.read_text(encoding="utf-8")
