"""Reference basket store API.

Serves the authoritative basket over the same REST contract the client engine speaks, so
the HTTP transport can be exercised locally and in tests.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from packages.shared.schemas.errors_v1 import ErrorResponseV1, ErrorStackV1
from services.basket.app.routers.checkout import router as checkout_router
from services.basket.app.routers.containers import router as containers_router
from services.basket.app.services.store import StoreError

app = FastAPI(title="Basket Store API")

app.include_router(checkout_router)
app.include_router(containers_router)


@app.exception_handler(StoreError)
async def _store_error(request: Request, exc: StoreError) -> JSONResponse:
    del request
    body = ErrorResponseV1(error=ErrorStackV1(error_stack=exc.entries))
    return JSONResponse(status_code=400, content=body.model_dump())


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
