"""
Feed template rendering.

Templates are loaded once from a directory of named templates (one per
extractor, e.g. generic.xml, journalclub.xml) and rendered with:

  feed      feed name
  items     ordered list of items, newest first
  base_url  public base URL for item links

Filters: rfc2822, rfc3339.
"""

from datetime import datetime
from email.utils import format_datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from mailfeed.errors import RenderError
from mailfeed.models.item import rfc3339


def rfc2822(value: datetime) -> str:
    return format_datetime(value)


class FeedRenderer:
    def __init__(self, templates_dir: str, base_url: str = ""):
        if not Path(templates_dir).is_dir():
            raise ValueError(f"Templates directory not found: {templates_dir}")
        self.templates_dir = templates_dir
        self.base_url = base_url.rstrip("/")
        self._env = Environment(
            loader=FileSystemLoader(templates_dir),
            autoescape=select_autoescape(["xml", "html"]),
            keep_trailing_newline=True,
        )
        self._env.filters["rfc2822"] = rfc2822
        self._env.filters["rfc3339"] = rfc3339

    def render(self, template_name: str, feed: str, items: list) -> bytes:
        """Render items through template_name. Raises RenderError on failure."""
        try:
            template = self._env.get_template(template_name)
            text = template.render(feed=feed, items=items, base_url=self.base_url)
        except (TemplateError, TypeError, ValueError, AttributeError) as e:
            raise RenderError(f"execute feed template {template_name!r}: {e}") from e
        return text.encode("utf-8")
