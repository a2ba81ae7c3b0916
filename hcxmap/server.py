# hcxmap/server.py
"""
FastAPI server for the hcxmap CLI.
"""

from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from starlette.responses import JSONResponse

from hcxmap.pipeline import LocateResult
from hcxmap.utils.log import get_logger
from hcxmap.utils.validate import AccessPointRecord, TrackPoint

logger = get_logger(__name__)


def create_app(result: LocateResult) -> FastAPI:
    """
    Build a FastAPI instance serving the results of one locate run.
    """
    app = FastAPI()
    app.state.result = result

    def _records(request: Request) -> list[AccessPointRecord]:
        return [
            AccessPointRecord.from_access_point(ap)
            for ap in request.app.state.result.access_points
            if ap.estimated_position is not None
        ]

    @app.get("/api/status", response_class=JSONResponse)
    async def status(request: Request) -> JSONResponse:
        res = request.app.state.result
        return JSONResponse(
            status_code=200,
            content={
                "status": "ok",
                "workdir": str(res.workdir),
                "access_points": len(res.access_points),
                "positions": len(res.track),
            },
        )

    @app.get("/api/access-points", response_model=list[AccessPointRecord])
    async def get_access_points(
        request: Request,
        security: Optional[str] = None,
        method: Optional[str] = None,
    ):
        """
        Located access points, optionally filtered by security label or method.
        """
        records = _records(request)
        if security is not None:
            records = [r for r in records if r.security == security]
        if method is not None:
            records = [r for r in records if r.method == method]
        return records

    @app.get("/api/access-points/{mac}", response_model=AccessPointRecord)
    async def get_access_point(request: Request, mac: str):
        mac = mac.lower().replace("-", ":")
        for rec in _records(request):
            if rec.mac == mac:
                return rec
        raise HTTPException(status_code=404, detail=f"unknown access point {mac}")

    @app.get("/api/track", response_model=list[TrackPoint])
    async def get_track(request: Request):
        return [TrackPoint.from_position(p) for p in request.app.state.result.track]

    return app
