"""REST API 라우트: 상태 조회 및 아카이브 트리거."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from social_archiver.domain.entities import ArchiveRun, PageSnapshot, Platform
from social_archiver.domain.exceptions import StorageFailure

router = APIRouter(tags=["api"])


class CaptureRequest(BaseModel):
    platform: Platform


class HtmlArchiveRequest(BaseModel):
    """브라우저 측 협력자가 전송한 DOM 스냅샷."""

    html: str
    url: str
    platform: Optional[Platform] = None


def _get_container(request: Request):
    return request.app.state.container


def _run_to_dict(run: ArchiveRun) -> dict[str, Any]:
    return {
        "source": run.source,
        "status": run.status,
        "posts_found": run.posts_found,
        "posts_archived": run.posts_archived,
        "error": run.error_message,
        "started_at": run.started_at.isoformat() if run.started_at else None,
        "completed_at": run.completed_at.isoformat() if run.completed_at else None,
        "results": [
            {
                "post_id": r.post_id,
                "success": r.success,
                "filename": r.filename,
                "path": r.final_path,
                "failure_kind": r.failure_kind,
                "reason": r.reason,
                "media_saved": r.media_saved,
                "media_omitted": r.media_omitted,
                "preview": r.preview,
            }
            for r in run.results
        ],
    }


@router.get("/status")
async def status(request: Request):
    """저장 루트와 브라우저 연결 상태."""
    c = _get_container(request)

    storage: dict[str, Any] = {"selected": False, "permission": None, "name": None}
    try:
        root = await c.storage.get_root()
        storage = {
            "selected": True,
            "permission": (await root.query_permission()).value,
            "name": root.name,
        }
    except StorageFailure as e:
        storage["error"] = str(e)

    return {
        "app": c.config.name,
        "storage": storage,
        "browser_available": await c.page_source.is_available(),
        "fetch_strategies": c.fetcher.strategy_names,
        "platforms": [p.value for p in c.config.capture.platforms],
    }


@router.post("/archive/capture")
async def trigger_capture(request: Request, body: CaptureRequest):
    """브라우저 탭을 캡처해서 보이는 게시물을 아카이브."""
    c = _get_container(request)
    try:
        run = await c.capture_feed_use_case().execute(body.platform)
        return _run_to_dict(run)
    except Exception as e:
        return JSONResponse(status_code=500, content={"error": str(e)})


@router.post("/archive/html")
async def archive_html(request: Request, body: HtmlArchiveRequest):
    """전송된 HTML 스냅샷을 아카이브."""
    c = _get_container(request)
    snapshot = PageSnapshot(html=body.html, url=body.url)
    try:
        run = await c.capture_feed_use_case().archive_snapshot(snapshot, body.platform)
    except Exception as e:
        return JSONResponse(status_code=500, content={"error": str(e)})

    if run.status == "failed" and run.posts_found == 0:
        return JSONResponse(status_code=422, content=_run_to_dict(run))
    return _run_to_dict(run)
