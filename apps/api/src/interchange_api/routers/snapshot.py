"""Snapshot status and screen endpoints."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from interchange_api.config import get_settings
from interchange_api.logging import get_logger
from interchange_api.services.snapshot.service import get_snapshot_service

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["snapshot"])


# --- Response schemas ---


class AlertCountsResponse(BaseModel):
    metro: int = 0
    tram: int = 0


class CountsResponse(BaseModel):
    trains: int = 0
    trams: int = 0
    connections: int = 0
    alerts: AlertCountsResponse


class StatusResponse(BaseModel):
    """Response for /api/status."""

    ok: bool
    updated: Optional[str] = None
    warning: Optional[str] = None
    sources: Dict[str, int] = {}
    counts: CountsResponse
    notes: Dict[str, Any] = {}


class ScreenResponse(BaseModel):
    """Response for /api/screen."""

    version: int = 1
    data: Dict[str, Any]


# --- Endpoints ---


@router.get("/status", response_model=StatusResponse, summary="Snapshot counts and feed sources")
async def get_status() -> dict[str, Any]:
    settings = get_settings()
    if not settings.odata_key:
        return {
            "ok": True,
            "warning": "ODATA_KEY is not set; realtime feeds are disabled.",
            "updated": None,
            "counts": {
                "trains": 0,
                "trams": 0,
                "connections": 0,
                "alerts": {"metro": 0, "tram": 0},
            },
        }

    snapshot = await get_snapshot_service().get_snapshot(settings.odata_key)
    return {
        "ok": True,
        "updated": snapshot.generated_at.isoformat(),
        "sources": snapshot.source_timestamps.to_dict(),
        "counts": {
            "trains": len(snapshot.trains),
            "trams": len(snapshot.trams),
            "connections": len(snapshot.connections),
            "alerts": snapshot.alert_counts.to_dict(),
        },
        "notes": snapshot.notes.to_dict(),
    }


@router.get("/screen", response_model=ScreenResponse, summary="Full snapshot for display clients")
async def get_screen() -> dict[str, Any]:
    settings = get_settings()
    snapshot = await get_snapshot_service().get_snapshot(settings.odata_key)
    return {"version": 1, "data": snapshot.to_dict()}
