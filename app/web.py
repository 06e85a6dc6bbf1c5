from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from datastore.reading_store import ReadingStore, build_default_store


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

RECENT_ROWS = 20
POLL_INTERVAL_MS = 30_000


def get_store() -> ReadingStore:
    return build_default_store()


router = APIRouter(include_in_schema=False)


@router.get("/", name="dashboard", response_class=HTMLResponse)
def dashboard(
    request: Request,
    store: ReadingStore = Depends(get_store),
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "stats": store.stats(),
            "readings": store.recent(RECENT_ROWS),
            "recent_rows": RECENT_ROWS,
            "poll_interval_ms": POLL_INTERVAL_MS,
        },
    )
