import argparse
import asyncio
import base64
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List

from studio.config import load_config
from studio.workflow.client import http_provider
from studio.workflow.errors import InvalidImport
from studio.workflow.images import guess_mime_from_data_url, strip_data_url_prefix
from studio.workflow.models import Job, JobStatus, PresetKey
from studio.workflow.presets import CUSTOM_HINT, PRESETS, derive_steps
from studio.workflow.runner import JobRunner
from studio.workflow.store import JsonFileStore, StudioState
from studio.workflow.templates import build_prompt

_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp"}
# Form fields that hold structured values rather than text
_LIST_FIELDS = {"product_images"}


def _parse_form_overrides(items: List[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for item in items:
        if "=" not in item:
            raise ValueError(f"Invalid --set '{item}', expected field=value")
        k, v = item.split("=", 1)
        k, v = k.strip(), v.strip()
        if k in _LIST_FIELDS:
            raise ValueError(f"Field '{k}' cannot be set from the command line")
        if v.lower() in ("true", "false"):
            overrides[k] = v.lower() == "true"
        else:
            overrides[k] = v
    return overrides


def _now_stamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _open_state(args: argparse.Namespace) -> StudioState:
    cfg = load_config(args.config)
    return StudioState(JsonFileStore(args.state_dir or cfg.state_dir, cfg.storage_key))


def save_job_outputs(job: Job, output_dir: str) -> str:
    """Write each result image to disk plus a <job>_metadata.json next to them."""
    os.makedirs(output_dir, exist_ok=True)
    outputs = []
    for i, result in enumerate(job.results, start=1):
        entry: Dict[str, Any] = {"step_id": result.step_id, "module": result.module.value, "seed": result.seed}
        if result.image_data_url:
            mime = guess_mime_from_data_url(result.image_data_url) or "image/png"
            fname = f"{job.id}_{i}_{result.module.value.lower()}.{_EXTENSIONS.get(mime, 'png')}"
            out_path = os.path.join(output_dir, fname)
            with open(out_path, "wb") as f:
                f.write(base64.b64decode(strip_data_url_prefix(result.image_data_url)))
            entry["file"] = out_path
        outputs.append(entry)

    meta = {
        "job_id": job.id,
        "name": job.name,
        "status": job.status.value,
        "timestamp": _now_stamp(),
        "steps": len(job.steps),
        "outputs": outputs,
        "prompts": [r.prompt for r in job.results],
    }
    meta_path = os.path.join(output_dir, f"{job.id}_metadata.json")
    with open(meta_path, "w", encoding="utf-8") as f:
        json.dump(meta, f, ensure_ascii=False, indent=2)
    return meta_path


def cmd_presets(args: argparse.Namespace) -> int:
    for key, preset in PRESETS.items():
        print(f"{key.value}\t{len(preset.steps)} steps\t{preset.name}\t{preset.hint}")
    print(f"{PresetKey.CUSTOM.value}\t1 step\tCustom\t{CUSTOM_HINT}")
    return 0


def cmd_form(args: argparse.Namespace) -> int:
    studio = _open_state(args)
    if args.set:
        studio.update_form(_parse_form_overrides(args.set))
    print(json.dumps(studio.form.to_dict(), ensure_ascii=False, indent=2))
    return 0


def cmd_preview(args: argparse.Namespace) -> int:
    studio = _open_state(args)
    form = studio.form.apply_patch(_parse_form_overrides(args.set)) if args.set else studio.form
    steps = derive_steps(form)
    if args.first:
        steps = steps[:1]
    for step in steps:
        print(f"===== {step.id} {step.module.value} =====")
        print(build_prompt(step, form))
    return 0


def cmd_enqueue(args: argparse.Namespace) -> int:
    studio = _open_state(args)
    job = studio.enqueue()
    print(job.id)
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    studio = _open_state(args)
    studio.recover_interrupted()
    server_url = args.server or cfg.server_url
    force_mock = args.mock or cfg.force_mock
    provider = http_provider(server_url, timeout=cfg.timeout) if server_url else None
    if provider is None and not force_mock:
        print("No --server configured; steps will use mock images.", file=sys.stderr)

    pending = [j.id for j in studio.jobs if j.status is JobStatus.QUEUED]
    runner = JobRunner(studio, provider=provider, force_mock=force_mock)
    asyncio.run(runner.run_pending())

    output_dir = args.output_dir or cfg.output_dir
    failed = 0
    for job_id in pending:
        job = studio.get_job(job_id)
        if job.status is JobStatus.ERROR:
            failed += 1
            print(f"{job.id}\terror\t{job.error}", file=sys.stderr)
            continue
        print(f"{job.id}\t{job.status.value}\t{save_job_outputs(job, output_dir)}")
    return 1 if failed else 0


def cmd_jobs(args: argparse.Namespace) -> int:
    studio = _open_state(args)
    for job in studio.search_jobs(args.query or ""):
        print(f"{job.id}\t{job.status.value}\t{len(job.results)}/{len(job.steps)}\t{job.name}")
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    studio = _open_state(args)
    with open(args.out, "w", encoding="utf-8") as f:
        json.dump(studio.export_document(), f, ensure_ascii=False, indent=2)
    print(args.out)
    return 0


def cmd_import(args: argparse.Namespace) -> int:
    studio = _open_state(args)
    try:
        with open(args.file, "r", encoding="utf-8") as f:
            doc = json.load(f)
        studio.import_document(doc)
    except (ValueError, InvalidImport) as e:
        print(f"Invalid import file: {e}", file=sys.stderr)
        return 2
    print(f"imported {len(studio.jobs)} jobs")
    return 0


def cmd_reset(args: argparse.Namespace) -> int:
    _open_state(args).reset()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Listing Studio: marketplace image jobs from a product brief")
    parser.add_argument("--config", default="config.toml")
    parser.add_argument("--state-dir", dest="state_dir", help="Directory holding the state document")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("presets", help="List presets").set_defaults(func=cmd_presets)

    p = sub.add_parser("form", help="Show or edit the stored form")
    p.add_argument("--set", action="append", default=[], help="field=value; repeatable")
    p.set_defaults(func=cmd_form)

    p = sub.add_parser("preview", help="Print the prompts the current form would enqueue")
    p.add_argument("--set", action="append", default=[], help="field=value override (not saved)")
    p.add_argument("--first", action="store_true", help="Only the first step")
    p.set_defaults(func=cmd_preview)

    sub.add_parser("enqueue", help="Queue a job from the current form").set_defaults(func=cmd_enqueue)

    p = sub.add_parser("run", help="Run queued jobs and write their images")
    p.add_argument("--server", help="Base URL of a running studio API")
    p.add_argument("--mock", action="store_true", help="Skip the provider and use mock images")
    p.add_argument("--output-dir", dest="output_dir")
    p.set_defaults(func=cmd_run)

    p = sub.add_parser("jobs", help="List jobs, newest first")
    p.add_argument("--query", "-q")
    p.set_defaults(func=cmd_jobs)

    p = sub.add_parser("export", help="Write the state document to a file")
    p.add_argument("--out", required=True)
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("import", help="Replace the state with an exported document")
    p.add_argument("file")
    p.set_defaults(func=cmd_import)

    sub.add_parser("reset", help="Restore the default form and drop all jobs").set_defaults(func=cmd_reset)
    return parser


def main(argv: List[str] | None = None) -> int:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except ValueError as e:
        raise SystemExit(f"Invalid arguments: {e}")


if __name__ == "__main__":
    raise SystemExit(main())
