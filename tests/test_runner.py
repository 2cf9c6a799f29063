import asyncio
import json
from typing import List

from studio.workflow.errors import Err, Ok, ProviderFailure
from studio.workflow.images import GeneratedImage
from studio.workflow.models import JobStatus
from studio.workflow.runner import MAX_SEED, JobRunner
from studio.workflow.store import MemoryStore, StudioState

from conftest import PNG_1x1

NO_DELAY = (0, 0)


def _provider(fail_on=(), record: List = None, studio: StudioState = None):
    calls = {"n": 0}

    async def generate(prompt, images):
        calls["n"] += 1
        if record is not None and studio is not None:
            record.append([j.id for j in studio.jobs if j.status is JobStatus.RUNNING])
        await asyncio.sleep(0)
        if calls["n"] in fail_on:
            return Err(ProviderFailure("boom"))
        return Ok(GeneratedImage(base64=PNG_1x1, mime="image/png", model_used="fake"))

    generate.calls = calls
    return generate


def test_provider_failure_falls_back_to_mock(studio):
    job = studio.enqueue()
    provider = _provider(fail_on={2})
    runner = JobRunner(studio, provider=provider, mock_delay_ms=NO_DELAY)

    assert asyncio.run(runner.run_pending()) == 1

    assert job.status is JobStatus.DONE
    assert job.error is None
    assert [r.step_id for r in job.results] == [s.id for s in job.steps]
    assert job.results[0].image_data_url == f"data:image/png;base64,{PNG_1x1}"
    assert job.results[1].image_data_url.startswith("data:image/png;base64,")
    assert job.results[1].image_data_url != job.results[0].image_data_url
    assert all(0 <= r.seed < MAX_SEED for r in job.results)
    assert provider.calls["n"] == 3


def test_raising_provider_falls_back_to_mock(studio):
    job = studio.enqueue()
    calls = {"n": 0}

    async def provider(prompt, images):
        calls["n"] += 1
        if calls["n"] == 2:
            raise RuntimeError("connection reset")
        return Ok(GeneratedImage(base64=PNG_1x1))

    asyncio.run(JobRunner(studio, provider=provider, mock_delay_ms=NO_DELAY).run_pending())

    assert job.status is JobStatus.DONE
    assert job.error is None
    assert len(job.results) == 3
    assert job.results[1].image_data_url != job.results[0].image_data_url
    assert calls["n"] == 3


def test_results_carry_prompt_for_the_step(studio):
    studio.update_form({"preset": "WHITE_BACKGROUND_ALL_ANGLES"})
    job = studio.enqueue()
    asyncio.run(JobRunner(studio, provider=_provider(), mock_delay_ms=NO_DELAY).run_pending())
    assert len(job.results) == 6
    assert "Angle selector: TOP_DOWN" in job.results[2].prompt


def test_reference_images_are_sent(studio):
    studio.update_form({"product_images": [{"id": "a", "name": "a.png", "data_url": "data:image/png;base64,AAAA"}]})
    studio.enqueue()
    seen = []

    async def provider(prompt, images):
        seen.append(images)
        return Ok(GeneratedImage(base64=PNG_1x1))

    asyncio.run(JobRunner(studio, provider=provider, mock_delay_ms=NO_DELAY).run_pending())
    assert seen == [["data:image/png;base64,AAAA"]] * 3


def test_forced_mock_skips_provider(studio):
    job = studio.enqueue()
    provider = _provider()
    asyncio.run(JobRunner(studio, provider=provider, force_mock=True, mock_delay_ms=NO_DELAY).run_pending())
    assert provider.calls["n"] == 0
    assert job.status is JobStatus.DONE
    assert len(job.results) == 3


def test_one_job_at_a_time_oldest_first(studio):
    first = studio.enqueue()
    second = studio.enqueue()
    first.created_at, second.created_at = 20, 10
    running: List = []
    runner = JobRunner(studio, provider=_provider(record=running, studio=studio), mock_delay_ms=NO_DELAY)

    assert asyncio.run(runner.run_pending()) == 2

    assert all(len(r) == 1 for r in running)
    assert running[0] == [second.id]
    assert running[-1] == [first.id]
    assert first.status is second.status is JobStatus.DONE


def test_latch_rejects_reentry(studio):
    studio.enqueue()
    studio.enqueue()
    runner = JobRunner(studio, provider=_provider(), mock_delay_ms=NO_DELAY)

    async def both():
        return await asyncio.gather(runner.run_pending(), runner.run_pending())

    assert sorted(asyncio.run(both())) == [0, 2]
    assert not runner.busy
    assert studio.stats()["done"] == 2


def test_job_enqueued_while_running_is_picked_up(studio):
    studio.enqueue()
    added = []

    async def provider(prompt, images):
        if not added:
            added.append(studio.enqueue())
        return Ok(GeneratedImage(base64=PNG_1x1))

    assert asyncio.run(JobRunner(studio, provider=provider, mock_delay_ms=NO_DELAY).run_pending()) == 2
    assert added[0].status is JobStatus.DONE


class FlakyStore(MemoryStore):
    def __init__(self, fail_on):
        super().__init__()
        self.fail_on = set(fail_on)

    def save(self, text):
        if self.writes + 1 in self.fail_on:
            self.writes += 1
            raise OSError("disk full")
        super().save(text)


def test_persistence_failure_marks_job_error():
    store = FlakyStore(fail_on={2})
    studio = StudioState(store)
    job = studio.enqueue()

    asyncio.run(JobRunner(studio, provider=_provider(), mock_delay_ms=NO_DELAY).run_pending())

    assert job.status is JobStatus.ERROR
    assert job.error == "disk full"
    assert job.results == []
    saved = json.loads(store.text)
    assert saved["jobs"][0]["status"] == "error"
    assert saved["jobs"][0]["error"] == "disk full"


def test_failed_final_save_discards_results():
    store = FlakyStore(fail_on={3})
    studio = StudioState(store)
    job = studio.enqueue()

    asyncio.run(JobRunner(studio, provider=_provider(), mock_delay_ms=NO_DELAY).run_pending())

    assert job.status is JobStatus.ERROR
    assert job.results == []
    assert json.loads(store.text)["jobs"][0]["status"] == "error"


def test_error_persist_failure_is_not_raised():
    store = FlakyStore(fail_on={2, 3})
    studio = StudioState(store)
    job = studio.enqueue()

    assert asyncio.run(JobRunner(studio, provider=_provider(), mock_delay_ms=NO_DELAY).run_pending()) == 1
    assert job.status is JobStatus.ERROR


def test_imported_running_job_does_not_overlap(studio):
    stuck = studio.enqueue()
    waiting = studio.enqueue()
    stuck.status = JobStatus.RUNNING
    doc = json.loads(json.dumps(studio.export_document()))

    other = StudioState(MemoryStore())
    other.import_document(doc)
    running: List = []
    asyncio.run(JobRunner(other, provider=_provider(record=running, studio=other), mock_delay_ms=NO_DELAY).run_pending())

    assert running and all(r == [waiting.id] for r in running)
    assert other.stats() == {"total": 2, "done": 1, "running": 0, "queued": 0, "error": 1}
