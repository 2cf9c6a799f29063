import json

import pytest

from studio.workflow.errors import InvalidImport, JobNotFound
from studio.workflow.models import FormState, JobStatus, PresetKey
from studio.workflow.modules import Module
from studio.workflow.store import (
    EXPORT_VERSION,
    INTERRUPTED_MESSAGE,
    JsonFileStore,
    MemoryStore,
    StudioState,
)


def test_defaults_when_store_is_empty_or_malformed():
    for text in (None, "", "{not json", "[1, 2]", json.dumps({"jobs": [{"id": "x"}]})):
        studio = StudioState(MemoryStore(text))
        assert studio.form == FormState()
        assert studio.jobs == []


def test_partial_form_keeps_defaults():
    studio = StudioState(MemoryStore(json.dumps({"form": {"category": "boots"}, "jobs": []})))
    assert studio.form.category == "boots"
    assert studio.form.niche_style == "street/skate"
    assert studio.form.preset is PresetKey.SHOPEE_STANDARD


def test_every_mutation_persists(studio, store):
    studio.update_form({"category": "sandals"})
    assert store.writes == 1
    job = studio.enqueue()
    assert store.writes == 2
    studio.delete_job(job.id)
    assert store.writes == 3

    saved = json.loads(store.text)
    assert saved["form"]["category"] == "sandals"
    assert saved["jobs"] == []


def test_update_form_clamps_and_caps_images(studio):
    images = [{"id": f"img{i}", "name": "x.png", "data_url": "data:image/png;base64,AAAA"} for i in range(15)]
    form = studio.update_form({"category": "c" * 500, "product_images": images, "unknown": "ignored"})
    assert len(form.category) == 120
    assert len(form.product_images) == 12
    assert not hasattr(form, "unknown")


def test_update_form_rejects_bad_enum(studio):
    with pytest.raises(ValueError):
        studio.update_form({"angle": "UPSIDE_DOWN"})


def test_enqueue_builds_steps_from_preset(studio):
    job = studio.enqueue()
    assert job.status is JobStatus.QUEUED
    assert [s.id for s in job.steps] == ["s1_0", "s2_1", "s3_2"]
    assert [s.module for s in job.steps] == [Module.AD_COVER, Module.PROMO_INFOGRAPHIC, Module.LIFESTYLE_ON_FOOT]
    assert job.name == "sneakers • Shopee pack (Cover + Infographic + Lifestyle)"

    studio.update_form({"category": "", "preset": "CUSTOM", "module": "WHITE_BACKGROUND"})
    custom = studio.enqueue()
    assert custom.name == "Product • WHITE_BACKGROUND"
    assert [s.id for s in custom.steps] == ["custom_step_0"]


def test_get_and_delete_missing_job(studio):
    with pytest.raises(JobNotFound):
        studio.get_job("nope")
    with pytest.raises(JobNotFound):
        studio.delete_job("nope")


def test_next_queued_is_oldest(studio):
    first = studio.enqueue()
    second = studio.enqueue()
    first.created_at, second.created_at = 200, 100
    assert studio.next_queued() is second
    second.status = JobStatus.DONE
    assert studio.next_queued() is first


def test_recover_interrupted(studio, store):
    job = studio.enqueue()
    job.status = JobStatus.RUNNING
    studio.persist()

    reopened = StudioState(store)
    assert reopened.recover_interrupted() == 1
    recovered = reopened.get_job(job.id)
    assert recovered.status is JobStatus.ERROR
    assert recovered.error == INTERRUPTED_MESSAGE
    assert reopened.recover_interrupted() == 0


def test_search_and_stats(studio):
    a = studio.enqueue()
    studio.update_form({"category": "boots"})
    b = studio.enqueue()
    a.created_at, b.created_at = 1, 2
    b.status = JobStatus.ERROR

    assert [j.id for j in studio.search_jobs()] == [b.id, a.id]
    assert [j.id for j in studio.search_jobs("BOOTS")] == [b.id]
    assert [j.id for j in studio.search_jobs(a.id)] == [a.id]
    assert studio.search_jobs("nothing-like-this") == []

    assert studio.stats() == {"total": 2, "done": 0, "running": 0, "queued": 1, "error": 1}


def test_export_import_round_trip(studio):
    studio.update_form({"model_name": "Runner X", "preset": "THREE_COVERS"})
    studio.enqueue()
    doc = studio.export_document()
    assert doc["version"] == EXPORT_VERSION
    assert isinstance(doc["exported_at"], int)

    other = StudioState(MemoryStore())
    other.import_document(json.loads(json.dumps(doc)))
    assert other.to_dict() == studio.to_dict()


def test_import_rejects_bad_documents(studio):
    studio.enqueue()
    before = studio.to_dict()
    for doc in (None, [], {}, {"form": {}}, {"jobs": []}, {"form": "x", "jobs": []}, {"form": {}, "jobs": {}}):
        with pytest.raises(InvalidImport):
            studio.import_document(doc)
    with pytest.raises(InvalidImport):
        studio.import_document({"form": {}, "jobs": [{"id": "j", "status": "weird", "created_at": 1}]})
    assert studio.to_dict() == before

    studio.import_document({"form": {}, "jobs": []})
    assert studio.jobs == []


def test_reset(studio):
    studio.update_form({"category": "boots"})
    studio.enqueue()
    studio.reset()
    assert studio.form == FormState()
    assert studio.jobs == []


def test_json_file_store(tmp_path):
    store = JsonFileStore(str(tmp_path / "state"), "my_key")
    assert store.load() is None

    studio = StudioState(store)
    studio.update_form({"colors": "red"})
    assert store.path == str(tmp_path / "state" / "my_key.json")

    again = StudioState(JsonFileStore(str(tmp_path / "state"), "my_key"))
    assert again.form.colors == "red"


def test_import_fails_jobs_exported_mid_run(studio):
    running = studio.enqueue()
    queued = studio.enqueue()
    running.status = JobStatus.RUNNING
    doc = json.loads(json.dumps(studio.export_document()))

    other = StudioState(MemoryStore())
    other.import_document(doc)

    imported = other.get_job(running.id)
    assert imported.status is JobStatus.ERROR
    assert imported.error == INTERRUPTED_MESSAGE
    assert other.get_job(queued.id).status is JobStatus.QUEUED
    assert other.stats()["running"] == 0
    assert json.loads(other.store.text)["jobs"][0]["status"] == "error"
