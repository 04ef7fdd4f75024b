"""Utility functions for static site generation."""
import re
from datetime import date
from typing import Optional
from urllib.parse import urlparse

WORDS_PER_MINUTE = 200
DEFAULT_SLUG = "post"

_IMAGE_PATTERN = re.compile(r"!\[[^\]]*\]\(([^)]+)\)")


def slugify(title: Optional[str]) -> str:
    """Convert a post title to its default page name, e.g. ``my-post.html``."""
    slug = (title or "").lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    return (slug or DEFAULT_SLUG) + ".html"


def ensure_html_suffix(uri: str) -> str:
    return uri if uri.endswith(".html") else uri + ".html"


def tag_slug(tag: str) -> str:
    return re.sub(r"\s+", "-", tag.lower())


def site_name(url_base: Optional[str]) -> str:
    """Capitalized host of the public URL base, without ``www.``."""
    if not url_base:
        return ""
    host = urlparse(url_base).hostname
    if not host:
        return ""
    if host.startswith("www."):
        host = host[4:]
    return host[:1].upper() + host[1:]


def first_image(markdown_text: str) -> Optional[str]:
    match = _IMAGE_PATTERN.search(markdown_text or "")
    if match and match.group(1).startswith(("http://", "https://")):
        return match.group(1)
    return None


def strip_title_line(markdown_text: str) -> str:
    """Drop a leading ``# Title`` line; templates render the title separately."""
    if markdown_text.startswith("# "):
        newline = markdown_text.find("\n")
        if newline > 0:
            return markdown_text[newline + 1:].strip()
    return markdown_text


def word_count(text: str) -> int:
    return len(text.split())


def read_time(text: str) -> str:
    minutes = max(1, round(word_count(text) / WORDS_PER_MINUTE))
    return f"{minutes} min read"


def parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def format_long_date(value: Optional[date]) -> str:
    return f"{value:%B} {value.day}, {value.year}" if value else ""


def format_short_date(value: Optional[date]) -> str:
    return f"{value:%b} {value.day}, {value.year}" if value else ""
