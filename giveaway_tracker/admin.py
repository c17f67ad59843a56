"""Administrative JSON API.

Endpoints:
- GET  /api/config       -> tracking config
- POST /api/config       -> partial config update (owner only)
- GET  /api/tracked      -> entry log and summary
- POST /api/triggerScan  -> rescan + display refresh now (owner only)
"""
from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Union

from fastapi import Depends, FastAPI, Header
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .errors import AuthorizationDenied
from .service import Tracker

log = logging.getLogger("giveaway-tracker.admin")


class ConfigUpdate(BaseModel):
    trackedChannelIds: Optional[List[Union[int, str]]] = None
    displayChannelId: Optional[Union[int, str]] = None
    updateIntervalMinutes: Optional[Any] = None
    buckets: Optional[dict[str, Any]] = None


def create_admin_app(tracker: Tracker, on_config_change: Callable[[], None] | None = None) -> FastAPI:
    app = FastAPI(title="Giveaway Tracker Admin")
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.exception_handler(AuthorizationDenied)
    async def _forbidden(request, exc):
        log.warning("Rejected admin request to %s: %s", request.url.path, exc)
        return JSONResponse(status_code=403, content={"error": "forbidden"})

    def require_owner(x_user_id: Optional[str] = Header(default=None)):
        tracker.config.check_owner(x_user_id)

    @app.get("/api/config")
    async def get_config():
        return tracker.config.config.to_dict()

    @app.post("/api/config", dependencies=[Depends(require_owner)])
    async def update_config(body: ConfigUpdate):
        try:
            cfg = tracker.config.update(
                tracked_channel_ids=body.trackedChannelIds,
                display_channel_id=body.displayChannelId,
                update_interval_minutes=body.updateIntervalMinutes,
                buckets=body.buckets,
            )
        except ValueError as e:
            return JSONResponse(status_code=400, content={"error": str(e)})
        if on_config_change is not None:
            on_config_change()
        return {"ok": True, "config": cfg.to_dict()}

    @app.get("/api/tracked")
    async def get_tracked():
        return tracker.store.snapshot().to_dict()

    @app.post("/api/triggerScan", dependencies=[Depends(require_owner)])
    async def trigger_scan():
        try:
            added = await tracker.run_cycle()
        except Exception:
            log.exception("Triggered scan failed")
            return JSONResponse(status_code=500, content={"error": "failed"})
        return {"ok": True, "added": added}

    return app
