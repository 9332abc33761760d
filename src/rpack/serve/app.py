"""Read-only HTTP interface over a packed dataset."""

from __future__ import annotations

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from rpack.data.dataset import PackedDataset

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 9961


class HealthResponse(BaseModel):
    status: str
    items: int
    max_len: int


def _dataset(request: Request) -> PackedDataset:
    return request.app.state.dataset


def create_app(dataset: PackedDataset) -> FastAPI:
    """Build the app; ``dataset`` is shared by every request and never written."""

    app = FastAPI(title="rpack", docs_url=None, redoc_url=None)
    app.state.dataset = dataset

    @app.get("/len", response_class=PlainTextResponse)
    def dataset_len(request: Request) -> str:
        return str(len(_dataset(request)))

    @app.get("/item")
    def dataset_item(idx: int, request: Request) -> list[int]:
        data = _dataset(request)
        if idx < 0 or idx >= len(data):
            raise HTTPException(status_code=404, detail=f"index {idx} out of range")
        return data.tolist(idx)

    @app.get("/health", response_model=HealthResponse)
    def health(request: Request) -> HealthResponse:
        data = _dataset(request)
        return HealthResponse(status="ok", items=len(data), max_len=data.max_len)

    return app


def serve(dataset: PackedDataset, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    print(f"[serve] {len(dataset):,} buffers on http://{host}:{port}", flush=True)
    uvicorn.run(create_app(dataset), host=host, port=port, log_level="info")
