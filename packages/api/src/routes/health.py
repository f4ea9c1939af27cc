# This project was developed with assistance from AI tools.
"""Liveness endpoints."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/api/ping")
async def ping() -> dict:
    return {"ok": True, "message": "pong"}
