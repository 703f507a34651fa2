"""Jinja2 rendering of Alertmanager notifications into Telegram HTML."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .alertmanager import format_duration, parse_time

logger = logging.getLogger("alertbot.renderer")

BUILTIN_TEMPLATES = Path(__file__).parent / "templates"
DEFAULT_TEMPLATE = "default.html.j2"


def _since(value: Optional[str]) -> str:
    start = parse_time(value)
    if start is None:
        return "unknown"
    return format_duration((datetime.now(timezone.utc) - start).total_seconds())


def _duration(start: Optional[str], end: Optional[str]) -> str:
    """Duration between two timestamps; an unset/zero end means 'until now'."""
    begin = parse_time(start)
    if begin is None:
        return "unknown"
    finish = parse_time(end)
    # Alertmanager uses 0001-01-01 for alerts that have not ended
    if finish is None or finish.year <= 1:
        finish = datetime.now(timezone.utc)
    return format_duration((finish - begin).total_seconds())


class TemplateRenderer:
    """Renders webhook data with a Jinja2 template.

    Directories given in ``template_dirs`` are searched before the built-in
    templates, so a file named ``default.html.j2`` there overrides the default.
    """

    def __init__(self, template_dirs: Optional[list[str]] = None, template_name: str = DEFAULT_TEMPLATE):
        search_path = [str(p) for p in (template_dirs or [])] + [str(BUILTIN_TEMPLATES)]
        self.template_name = template_name
        self.env = Environment(
            loader=FileSystemLoader(search_path),
            autoescape=select_autoescape(["html", "html.j2"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["since"] = _since
        self.env.filters["duration"] = _duration
        logger.debug(f"Template search path: {search_path}")

    def render(self, event: dict[str, Any]) -> str:
        """Render one webhook event. Template errors propagate to the caller."""
        template = self.env.get_template(self.template_name)
        return template.render(**event).strip()
