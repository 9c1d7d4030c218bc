"""Jinja2 view rendering shared by the HTML routers."""

from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates

TEMPLATES_DIR = Path(__file__).parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def render_notify(request: Request, error: str, status_code: int = 200):
    """Render the user-facing notice page for an expected rejection."""
    return templates.TemplateResponse(
        request,
        "notify/notify.html",
        {"error": error},
        status_code=status_code,
    )
