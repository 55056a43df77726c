from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from services.basket.app.services.containers import render_container
from services.basket.app.services.store import store

router = APIRouter()

_CONTAINER_PREFIX = "container_"


@router.get("/rest/{source}/{container}/")
def get_container(source: str, container: str, request: Request) -> dict:
    if not container.startswith(_CONTAINER_PREFIX):
        raise HTTPException(status_code=404, detail="Not Found")

    name = container[len(_CONTAINER_PREFIX) :]
    html = render_container(store, source, name, dict(request.query_params))
    if html is None:
        raise HTTPException(status_code=404, detail=f"Unknown container {name!r}")
    return {"data": [html]}
