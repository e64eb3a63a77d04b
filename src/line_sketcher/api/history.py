"""History API endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, status

if TYPE_CHECKING:
    from line_sketcher.containers import AppContainer

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("")
async def list_history(request: Request) -> dict[str, object]:
    """Return stored generations, newest first."""
    container: AppContainer = request.app.state.container
    return {"items": container.history_service.list_records()}


@router.get("/{record_id}")
async def history_detail(record_id: str, request: Request) -> dict[str, object]:
    """Return one stored generation."""
    container: AppContainer = request.app.state.container
    record = container.history_service.get(record_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return {"item": record}


@router.delete("/{record_id}")
async def delete_history_item(record_id: str, request: Request) -> dict[str, str]:
    """Delete one stored generation."""
    container: AppContainer = request.app.state.container
    container.history_service.delete(record_id)
    return {"status": "ok"}


@router.delete("")
async def clear_history(request: Request) -> dict[str, str]:
    """Delete all stored generations."""
    container: AppContainer = request.app.state.container
    container.history_service.clear()
    return {"status": "ok"}
