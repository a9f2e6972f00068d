"""Template Setup — Jinja2 environment with entity helpers registered as globals.

Invariants:
    - Application directories are searched before the package templates, so any
      view or partial can be overridden by name
    - HTML templates are autoescaped; helpers return Markup
"""

from functools import lru_cache
from pathlib import Path

import jinja2
from fastapi.templating import Jinja2Templates

from entitymvc.config import get_settings
from entitymvc.rendering.html_helpers import (
    display_index, display_text, editor, editor_for, enum_analyze, viewer, viewer_for,
)

PACKAGE_TEMPLATES = Path(__file__).resolve().parent.parent / "templates"


def setup_templates(*directories: str | Path) -> Jinja2Templates:
    """Build the Jinja2Templates used by entity controllers."""
    search_path = [str(d) for d in directories] + [str(PACKAGE_TEMPLATES)]
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(search_path),
        autoescape=jinja2.select_autoescape(["html", "xml"]),
    )
    env.globals.update(
        editor=editor,
        viewer=viewer,
        editor_for=editor_for,
        viewer_for=viewer_for,
        enum_analyze=enum_analyze,
        display_text=display_text,
        display_index=display_index,
    )
    return Jinja2Templates(env=env)


@lru_cache
def default_templates() -> Jinja2Templates:
    return setup_templates(*get_settings().template_dirs)
