from __future__ import annotations

import json
import logging
import os
import random
import time
from typing import Any, Dict, List, Optional, Protocol

from studio.workflow.errors import InvalidImport, JobNotFound
from studio.workflow.models import FormState, Job, JobStatus, PersistedState
from studio.workflow.presets import derive_steps, preset_label

log = logging.getLogger("studio.workflow.store")

STORAGE_KEY = "listing_studio_v1"
EXPORT_VERSION = "listing-studio-v1"
INTERRUPTED_MESSAGE = "interrupted before completion"


class StateStore(Protocol):
    def load(self) -> Optional[str]: ...

    def save(self, text: str) -> None: ...


class MemoryStore:
    def __init__(self, text: Optional[str] = None):
        self.text = text
        self.writes = 0

    def load(self) -> Optional[str]:
        return self.text

    def save(self, text: str) -> None:
        self.text = text
        self.writes += 1


class JsonFileStore:
    """One JSON document per storage key, kept at <directory>/<key>.json."""

    def __init__(self, directory: str, key: str = STORAGE_KEY):
        self.directory = directory
        self.key = key

    @property
    def path(self) -> str:
        return os.path.join(self.directory, f"{self.key}.json")

    def load(self) -> Optional[str]:
        if not os.path.exists(self.path):
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            return f.read()

    def save(self, text: str) -> None:
        os.makedirs(self.directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(text)


def now_ms() -> int:
    return int(time.time() * 1000)


def uid(prefix: str = "id") -> str:
    return f"{prefix}_{random.getrandbits(48):x}_{now_ms():x}"


def _fail_running(jobs: List[Job]) -> List[Job]:
    stale = [j for j in jobs if j.status is JobStatus.RUNNING]
    for job in stale:
        job.status = JobStatus.ERROR
        job.results = []
        job.error = INTERRUPTED_MESSAGE
    return stale


def parse_state(text: Optional[str]) -> PersistedState:
    if not text:
        return PersistedState()
    try:
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("state document is not an object")
        return PersistedState.from_dict(data)
    except (ValueError, KeyError, TypeError) as e:
        log.warning("state_load_malformed error=%s", e)
        return PersistedState()


class StudioState:
    """Explicit container for the persisted aggregate (form + jobs).

    Every mutation rewrites the whole document through the injected store.
    """

    def __init__(self, store: StateStore):
        self.store = store
        self.state = parse_state(store.load())

    @property
    def form(self) -> FormState:
        return self.state.form

    @property
    def jobs(self) -> List[Job]:
        return self.state.jobs

    def persist(self) -> None:
        self.store.save(json.dumps(self.state.to_dict(), ensure_ascii=False))

    def to_dict(self) -> Dict[str, Any]:
        return self.state.to_dict()

    # ---- form ----
    def update_form(self, patch: Dict[str, Any]) -> FormState:
        self.state.form = self.state.form.apply_patch(patch)
        self.persist()
        return self.state.form

    def reset(self) -> None:
        self.state = PersistedState()
        self.persist()

    # ---- jobs ----
    def get_job(self, job_id: str) -> Job:
        for job in self.state.jobs:
            if job.id == job_id:
                return job
        raise JobNotFound(job_id)

    def enqueue(self) -> Job:
        form = self.state.form
        steps = [s.with_id(f"{s.id}_{idx}") for idx, s in enumerate(derive_steps(form))]
        job = Job(
            id=uid("job"),
            created_at=now_ms(),
            name=f"{form.category or 'Product'} • {preset_label(form)}",
            status=JobStatus.QUEUED,
            steps=steps,
        )
        self.state.jobs.append(job)
        self.persist()
        log.info("job_enqueued id=%s steps=%s name=%s", job.id, len(steps), job.name)
        return job

    def delete_job(self, job_id: str) -> None:
        job = self.get_job(job_id)
        self.state.jobs.remove(job)
        self.persist()
        log.info("job_deleted id=%s", job_id)

    def next_queued(self) -> Optional[Job]:
        queued = [j for j in self.state.jobs if j.status is JobStatus.QUEUED]
        return min(queued, key=lambda j: j.created_at) if queued else None

    def recover_interrupted(self) -> int:
        """Move jobs left running by a previous process forward to error."""
        stale = _fail_running(self.state.jobs)
        if stale:
            self.persist()
            log.warning("jobs_recovered count=%s", len(stale))
        return len(stale)

    def search_jobs(self, query: str = "") -> List[Job]:
        newest_first = sorted(self.state.jobs, key=lambda j: j.created_at, reverse=True)
        q = query.strip().lower()
        if not q:
            return newest_first
        return [
            j
            for j in newest_first
            if q in j.name.lower() or q in j.id.lower() or any(q in r.module.value.lower() for r in j.results)
        ]

    def stats(self) -> Dict[str, int]:
        by_status = {s: 0 for s in JobStatus}
        for job in self.state.jobs:
            by_status[job.status] += 1
        return {
            "total": len(self.state.jobs),
            "done": by_status[JobStatus.DONE],
            "running": by_status[JobStatus.RUNNING],
            "queued": by_status[JobStatus.QUEUED],
            "error": by_status[JobStatus.ERROR],
        }

    # ---- export / import ----
    def export_document(self) -> Dict[str, Any]:
        doc = self.state.to_dict()
        return {"exported_at": now_ms(), "version": EXPORT_VERSION, "form": doc["form"], "jobs": doc["jobs"]}

    def import_document(self, doc: Any) -> None:
        if not isinstance(doc, dict) or not isinstance(doc.get("form"), dict) or not isinstance(doc.get("jobs"), list):
            raise InvalidImport("document must contain form and jobs")
        try:
            imported = PersistedState.from_dict({"form": doc["form"], "jobs": doc["jobs"]})
        except (ValueError, KeyError, TypeError) as e:
            raise InvalidImport(str(e)) from e
        # a job exported mid-run cannot resume here
        stale = _fail_running(imported.jobs)
        self.state = imported
        self.persist()
        log.info("state_imported jobs=%s interrupted=%s", len(imported.jobs), len(stale))
