from __future__ import annotations

from typing import List

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException
import logging

from studio.workflow.errors import InvalidImport
from studio.workflow.modules import step_to_dict
from studio.workflow.presets import PRESETS, derive_steps
from studio.workflow.runner import JobRunner
from studio.workflow.store import StudioState
from studio.workflow.templates import preview_prompt
from studio_api.deps import get_runner, get_studio
from studio_api.schemas import FormPatch, ImportOut, PresetOut, PromptPreviewOut, StepOut


router = APIRouter(prefix="/api", tags=["state"])
log = logging.getLogger("studio_api.routes.state")


@router.get("/presets", response_model=List[PresetOut])
async def list_presets():
    return [
        PresetOut(
            key=p.key,
            name=p.name,
            hint=p.hint,
            steps=[StepOut.model_validate(step_to_dict(s)) for s in p.steps],
        )
        for p in PRESETS.values()
    ]


@router.get("/state")
async def get_state(studio: StudioState = Depends(get_studio)):
    return studio.to_dict()


@router.patch("/state/form")
async def update_form(body: FormPatch, studio: StudioState = Depends(get_studio)):
    patch = body.model_dump(mode="json", exclude_none=True)
    log.info("form_update fields=%s", ",".join(sorted(patch)))
    try:
        form = studio.update_form(patch)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return form.to_dict()


@router.get("/prompt/preview", response_model=PromptPreviewOut)
async def prompt_preview(studio: StudioState = Depends(get_studio)):
    step = derive_steps(studio.form)[0]
    return PromptPreviewOut(step=StepOut.model_validate(step_to_dict(step)), prompt=preview_prompt(studio.form))


@router.post("/state/reset")
async def reset_state(
    background: BackgroundTasks,
    studio: StudioState = Depends(get_studio),
    runner: JobRunner = Depends(get_runner),
):
    log.info("state_reset")
    studio.reset()
    background.add_task(runner.run_pending)
    return studio.to_dict()


@router.get("/state/export")
async def export_state(studio: StudioState = Depends(get_studio)):
    log.info("state_export jobs=%s", len(studio.jobs))
    return studio.export_document()


@router.post("/state/import", response_model=ImportOut)
async def import_state(
    background: BackgroundTasks,
    doc: dict = Body(...),
    studio: StudioState = Depends(get_studio),
    runner: JobRunner = Depends(get_runner),
):
    try:
        studio.import_document(doc)
    except InvalidImport as e:
        raise HTTPException(status_code=400, detail=str(e))
    background.add_task(runner.run_pending)
    return ImportOut(jobs=len(studio.jobs))
