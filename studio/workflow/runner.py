from __future__ import annotations

import logging
import random
from typing import Awaitable, Callable, List, Optional, Tuple

from studio.workflow.errors import Err, Ok, Result
from studio.workflow.images import GeneratedImage
from studio.workflow.mock import DEFAULT_DELAY_MS, mock_generate_image
from studio.workflow.models import GenerationResult, Job, JobStatus
from studio.workflow.modules import GenerationStep
from studio.workflow.store import StudioState, now_ms
from studio.workflow.templates import build_prompt

log = logging.getLogger("studio.workflow.runner")

MAX_SEED = 1_000_000

# (prompt, reference image data URLs) -> Ok(GeneratedImage) | Err(error)
ImageProvider = Callable[[str, List[str]], Awaitable[Result]]


def _random_seed() -> int:
    return random.randrange(MAX_SEED)


class JobRunner:
    """Drains the queue one job at a time, one step at a time.

    Provider failures, returned or raised, never fail a job: the step falls
    back to a mock image.
    Anything else raised while a job runs (persistence, templating) marks
    that job as error.
    """

    def __init__(
        self,
        studio: StudioState,
        provider: Optional[ImageProvider] = None,
        force_mock: bool = False,
        mock_delay_ms: Tuple[int, int] = DEFAULT_DELAY_MS,
    ):
        self.studio = studio
        self.provider = provider
        self.force_mock = force_mock
        self.mock_delay_ms = mock_delay_ms
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    async def run_pending(self) -> int:
        """Run queued jobs until none is left. Returns how many were processed."""
        if self._busy:
            return 0
        self._busy = True
        processed = 0
        try:
            while True:
                job = self.studio.next_queued()
                if job is None:
                    break
                await self.run_job(job)
                processed += 1
        finally:
            self._busy = False
        return processed

    async def run_job(self, job: Job) -> Job:
        log.info("job_start id=%s steps=%s", job.id, len(job.steps))
        try:
            job.status = JobStatus.RUNNING
            job.error = None
            self.studio.persist()

            results: List[GenerationResult] = []
            for step in job.steps:
                results.append(await self._run_step(step))

            job.status = JobStatus.DONE
            job.results = results
            self.studio.persist()
            log.info("job_done id=%s results=%s", job.id, len(results))
        except Exception as e:
            log.exception("job_error id=%s", job.id)
            job.status = JobStatus.ERROR
            job.results = []
            job.error = str(e)
            try:
                self.studio.persist()
            except OSError:
                log.exception("job_error_persist_failed id=%s", job.id)
        return job

    async def _run_step(self, step: GenerationStep) -> GenerationResult:
        form = self.studio.form
        prompt = build_prompt(step, form)
        seed = _random_seed()

        outcome: Result
        if self.force_mock or self.provider is None:
            outcome = Err(RuntimeError("FORCED_MOCK"))
        else:
            try:
                outcome = await self.provider(prompt, [img.data_url for img in form.product_images])
            except Exception as e:
                # a provider that raises is treated like one that returned Err
                outcome = Err(e)

        if isinstance(outcome, Ok):
            image: GeneratedImage = outcome.value
        else:
            seed = _random_seed()
            log.warning("step_fallback_mock step=%s module=%s reason=%s", step.id, step.module.value, outcome.message)
            image = await mock_generate_image(f"{step.module.value} · {step.id}", seed, self.mock_delay_ms)

        return GenerationResult(
            step_id=step.id,
            module=step.module,
            prompt=prompt,
            seed=seed,
            created_at=now_ms(),
            image_data_url=image.data_url,
        )
