"""HTTP routes — run investigations and deep dives, browse saved reports."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from archaeologist.deepdive.models import DeepDiveOptions, DeepDiveResult, DeepDiveUpdate
from archaeologist.errors import CaseNotFound, SynthesisFailed
from archaeologist.evidence.models import CodeSelection
from archaeologist.investigation.progress import ProgressUpdate
from archaeologist.reasoning.models import ThinkingEffort
from archaeologist.reporting.markdown import export_markdown, format_adr, render_adr
from archaeologist.reporting.models import ADRExport, InvestigationResult, MarkdownExport

logger = logging.getLogger("archaeologist.api")
router = APIRouter(tags=["investigations"])


class InvestigationRequest(BaseModel):
    selection: CodeSelection
    thinking_effort: ThinkingEffort | None = None


class InvestigationResponse(BaseModel):
    result: InvestigationResult
    progress: list[ProgressUpdate]
    markdown: MarkdownExport
    report_path: str
    markdown_path: str


class DeepDiveRequest(BaseModel):
    selection: CodeSelection
    options: DeepDiveOptions | None = None
    thinking_effort: ThinkingEffort | None = None


class DeepDiveResponse(BaseModel):
    result: DeepDiveResult
    progress: list[DeepDiveUpdate]


class ADRResponse(BaseModel):
    adr: ADRExport
    content: str


@router.post("/investigations", response_model=InvestigationResponse)
async def create_investigation(body: InvestigationRequest, request: Request):
    """Investigate a code selection and save the result."""
    services = request.app.state.services
    updates: list[ProgressUpdate] = []

    logger.info("Investigation requested: file=%s lines=%d-%d",
                body.selection.file_path, body.selection.line_start, body.selection.line_end)
    try:
        result = await services.investigator(body.thinking_effort).investigate(body.selection, updates.append)
    except SynthesisFailed as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return InvestigationResponse(
        result=result,
        progress=updates,
        markdown=export_markdown(result),
        report_path=services.artifacts.save(result),
        markdown_path=services.artifacts.save_markdown(result),
    )


@router.post("/deep-dives", response_model=DeepDiveResponse)
async def create_deep_dive(body: DeepDiveRequest, request: Request):
    services = request.app.state.services
    updates: list[DeepDiveUpdate] = []

    logger.info("Deep dive requested: file=%s", body.selection.file_path)
    try:
        result = await services.explorer(body.thinking_effort).deep_dive(
            body.selection, body.options, updates.append
        )
    except SynthesisFailed as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    services.artifacts.save(result.main_investigation)
    return DeepDiveResponse(result=result, progress=updates)


@router.get("/reports")
async def list_reports(request: Request, limit: int = 20):
    reports = request.app.state.services.artifacts.list_reports(limit=limit)
    return {"reports": [r.model_dump(mode="json") for r in reports]}


@router.get("/reports/{case_id}", response_model=InvestigationResult)
async def get_report(case_id: str, request: Request):
    try:
        return request.app.state.services.artifacts.get(case_id)
    except CaseNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get("/reports/{case_id}/markdown", response_model=MarkdownExport)
async def get_report_markdown(case_id: str, request: Request):
    try:
        result = request.app.state.services.artifacts.get(case_id)
    except CaseNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return export_markdown(result)


@router.get("/reports/{case_id}/adr", response_model=ADRResponse)
async def get_report_adr(case_id: str, request: Request, title: str | None = None):
    """Distill a saved investigation into an Architecture Decision Record."""
    try:
        result = request.app.state.services.artifacts.get(case_id)
    except CaseNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    adr = render_adr(result, title or f"Why {result.file_path} exists")
    return ADRResponse(adr=adr, content=format_adr(adr))
