"""FastAPI web application for depbump."""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from core.config import Settings
from core.errors import (
    AlreadyRequested,
    DependencyNotFound,
    GatewayFailure,
    LockInconsistency,
    ProjectNotFound,
    UnrecognizedManifest,
    VersionMismatch,
)
from core.log import setup_logging
from core.models import DependencyCandidate, UpdateDependency
from core.update import UpdateService, build_update_service

app = FastAPI(
    title="depbump",
    description="Publish dependency bumps as merge requests",
    version="0.1.0",
)

_STATUS_CODES = {
    ProjectNotFound: 404,
    AlreadyRequested: 409,
    UnrecognizedManifest: 422,
    DependencyNotFound: 422,
    VersionMismatch: 422,
    LockInconsistency: 422,
    GatewayFailure: 502,
}


class UpdateRequest(BaseModel):
    """Request model for publishing one dependency bump."""
    project_name: str
    file_path: str
    dependency_name: str
    from_version: str
    to_version: str


class UpdateResponse(BaseModel):
    """Response model for a dependency bump."""
    ok: bool
    state: str
    change_request_url: Optional[str] = None
    error: Optional[str] = None
    stage: Optional[str] = None


class CandidateModel(BaseModel):
    name: str
    current_version: Optional[str] = None
    latest_version: str
    vulnerabilities: list[str] = Field(default_factory=list)


class CanUpdateRequest(BaseModel):
    """Scanner output for one manifest of one project."""
    project_id: str
    file_path: str
    candidates: list[CandidateModel]


class CandidateDecision(BaseModel):
    name: str
    can_update: bool
    should_update: bool


@lru_cache
def get_service() -> UpdateService:
    settings = Settings()
    setup_logging(settings.log_level, settings.json_logs)
    return build_update_service(settings)


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


@app.post("/api/update", response_model=UpdateResponse)
async def update_dependency(
    request: UpdateRequest, service: UpdateService = Depends(get_service)
):
    """Bump one dependency and open a merge request for it."""
    result = await service.update_project(
        UpdateDependency(
            project_name=request.project_name,
            file_path=request.file_path,
            dependency_name=request.dependency_name,
            from_version=request.from_version,
            to_version=request.to_version,
        )
    )

    response = UpdateResponse(
        ok=result.ok,
        state=result.state.value,
        change_request_url=result.change_request_url,
        error=str(result.error) if result.error else None,
        stage=result.error.stage if isinstance(result.error, GatewayFailure) else None,
    )
    if result.ok:
        return response

    status_code = _STATUS_CODES.get(type(result.error), 500)
    return JSONResponse(status_code=status_code, content=response.model_dump())


@app.post("/api/can-update", response_model=list[CandidateDecision])
async def can_update(
    request: CanUpdateRequest, service: UpdateService = Depends(get_service)
):
    """Tell which scanned candidates can and should get an update request."""
    candidates = [
        DependencyCandidate(
            name=item.name,
            current_version=item.current_version,
            latest_version=item.latest_version,
            vulnerabilities=list(item.vulnerabilities),
        )
        for item in request.candidates
    ]
    eligibility = await service.can_update(candidates, request.project_id, request.file_path)
    decisions = service.should_update(candidates)

    return [
        CandidateDecision(name=candidate.name, can_update=allowed, should_update=wanted)
        for (candidate, allowed), (_, wanted) in zip(eligibility, decisions)
    ]
