from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
import logging

from studio.workflow.errors import JobNotFound
from studio.workflow.runner import JobRunner
from studio.workflow.store import StudioState
from studio_api.deps import get_runner, get_studio
from studio_api.schemas import JobOut, StatsOut


router = APIRouter(prefix="/api/jobs", tags=["jobs"])
log = logging.getLogger("studio_api.routes.jobs")


@router.get("", response_model=List[JobOut])
async def list_jobs(q: Optional[str] = None, studio: StudioState = Depends(get_studio)):
    log.info("job_list q=%s", q)
    return [JobOut.model_validate(j.to_dict()) for j in studio.search_jobs(q or "")]


@router.get("/stats", response_model=StatsOut)
async def job_stats(studio: StudioState = Depends(get_studio)):
    return StatsOut(**studio.stats())


@router.post("", response_model=JobOut)
async def enqueue_job(
    background: BackgroundTasks,
    studio: StudioState = Depends(get_studio),
    runner: JobRunner = Depends(get_runner),
):
    job = studio.enqueue()
    out = JobOut.model_validate(job.to_dict())
    background.add_task(runner.run_pending)
    return out


@router.get("/{job_id}", response_model=JobOut)
async def get_job(job_id: str, studio: StudioState = Depends(get_studio)):
    log.info("job_get id=%s", job_id)
    try:
        job = studio.get_job(job_id)
    except JobNotFound:
        raise HTTPException(status_code=404, detail="job not found")
    return JobOut.model_validate(job.to_dict())


@router.delete("/{job_id}")
async def delete_job(
    job_id: str,
    background: BackgroundTasks,
    studio: StudioState = Depends(get_studio),
    runner: JobRunner = Depends(get_runner),
):
    try:
        studio.delete_job(job_id)
    except JobNotFound:
        raise HTTPException(status_code=404, detail="job not found")
    background.add_task(runner.run_pending)
    return {"deleted": job_id}
