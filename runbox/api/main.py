from __future__ import annotations

import threading
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from runbox.config import load_settings
from runbox.errors import BundleError, RunTimeoutError, SandboxError
from runbox.models.bundle import CodeBundle
from runbox.providers.runtime.docker import DockerRuntime
from runbox.sandbox.orchestrator import SandboxOrchestrator

_runtime_lock = threading.Lock()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    runtime = getattr(app.state, "runtime", None)
    if runtime is not None:
        runtime.close()
        app.state.runtime = None


app = FastAPI(title="runbox", lifespan=lifespan)


class RunRequest(BaseModel):
    files: dict[str, str] = Field(default_factory=dict)
    timeout_seconds: Optional[float] = Field(default=None, gt=0)


class RunResponse(BaseModel):
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int
    container_id: str


def get_orchestrator(request: Request) -> SandboxOrchestrator:
    state = request.app.state
    with _runtime_lock:
        if getattr(state, "runtime", None) is None:
            try:
                settings = load_settings()
                state.runtime = DockerRuntime.from_env()
            except SandboxError as exc:
                raise HTTPException(status_code=502, detail=str(exc)) from exc
            state.settings = settings
    return SandboxOrchestrator(state.runtime, state.settings)


@app.get("/health")
def health_check() -> dict:
    return {"status": "ok"}


@app.post("/runs", response_model=RunResponse)
def create_run(
    payload: RunRequest,
    orchestrator: SandboxOrchestrator = Depends(get_orchestrator),
) -> RunResponse:
    try:
        bundle = CodeBundle.from_mapping(
            payload.files, harness_name=orchestrator.settings.harness_name
        )
    except BundleError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    try:
        result = orchestrator.run(bundle, timeout_seconds=payload.timeout_seconds)
    except RunTimeoutError as exc:
        raise HTTPException(status_code=504, detail=str(exc)) from exc
    except SandboxError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return RunResponse(
        exit_code=result.exit_code,
        stdout=result.stdout_text,
        stderr=result.stderr_text,
        duration_ms=result.duration_ms,
        container_id=result.container_id,
    )
