from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from studio.workflow.modules import (
    Angle,
    Framing,
    GenerationStep,
    Module,
    Scene,
    step_from_dict,
    step_to_dict,
)


class PresetKey(str, Enum):
    SHOPEE_STANDARD = "SHOPEE_STANDARD"
    MERCADO_LIVRE_STANDARD = "MERCADO_LIVRE_STANDARD"
    THREE_COVERS = "THREE_COVERS"
    WHITE_BACKGROUND_ALL_ANGLES = "WHITE_BACKGROUND_ALL_ANGLES"
    CUSTOM = "CUSTOM"


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


# Max characters kept per brief field when the form is edited
FIELD_LIMITS: Dict[str, int] = {
    "niche_style": 120,
    "category": 120,
    "main_use": 160,
    "model_name": 140,
    "sizes": 140,
    "colors": 220,
    "benefits": 900,
    "extra_detail": 700,
    "restrictions": 1200,
}
MAX_PRODUCT_IMAGES = 12

_ENUM_FIELDS = {
    "module": Module,
    "angle": Angle,
    "framing": Framing,
    "scene": Scene,
    "preset": PresetKey,
}


def clamp_text(value: Optional[str], limit: int = 4000) -> str:
    if not value:
        return ""
    return value[:limit] if len(value) > limit else value


@dataclass(frozen=True)
class ProductImage:
    id: str
    name: str
    data_url: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "data_url": self.data_url}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductImage":
        return cls(id=str(data["id"]), name=str(data.get("name", "")), data_url=str(data["data_url"]))


@dataclass(frozen=True)
class FormState:
    niche_style: str = "street/skate"
    category: str = "sneakers"
    main_use: str = "everyday"
    sizes: str = "34–43"
    colors: str = "black, white"
    model_name: str = ""
    benefits: str = "comfort, lightness, durability"
    extra_detail: str = ""
    restrictions: str = ""

    product_images: List[ProductImage] = field(default_factory=list)

    module: Module = Module.AD_COVER
    angle: Angle = Angle.FRONT_45_COVER
    framing: Framing = Framing.KNEE_DOWN
    scene: Scene = Scene.URBAN_MINIMAL

    negative_block_on: bool = True
    mobile_legibility_on: bool = True

    preset: PresetKey = PresetKey.SHOPEE_STANDARD

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "product_images":
                value = [img.to_dict() for img in value]
            elif isinstance(value, Enum):
                value = value.value
            out[f.name] = value
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormState":
        """Missing keys fall back to defaults so older documents still load."""
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if f.name == "product_images":
                value = [ProductImage.from_dict(i) for i in (value or [])]
            elif f.name in _ENUM_FIELDS:
                value = _ENUM_FIELDS[f.name](value)
            elif f.name in ("negative_block_on", "mobile_legibility_on"):
                value = bool(value)
            else:
                value = "" if value is None else str(value)
            kwargs[f.name] = value
        return cls(**kwargs)

    def apply_patch(self, patch: Dict[str, Any]) -> "FormState":
        merged = self.to_dict()
        merged.update({k: v for k, v in patch.items() if k in merged})
        updated = FormState.from_dict(merged)
        clamped = {name: clamp_text(getattr(updated, name), limit) for name, limit in FIELD_LIMITS.items()}
        return replace(updated, product_images=updated.product_images[:MAX_PRODUCT_IMAGES], **clamped)


@dataclass(frozen=True)
class GenerationResult:
    step_id: str
    module: Module
    prompt: str
    seed: int
    created_at: int
    image_data_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_id": self.step_id,
            "module": self.module.value,
            "prompt": self.prompt,
            "seed": self.seed,
            "created_at": self.created_at,
            "image_data_url": self.image_data_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerationResult":
        return cls(
            step_id=str(data["step_id"]),
            module=Module(data["module"]),
            prompt=str(data["prompt"]),
            seed=int(data["seed"]),
            created_at=int(data["created_at"]),
            image_data_url=data.get("image_data_url"),
        )


@dataclass
class Job:
    id: str
    created_at: int
    name: str
    status: JobStatus
    steps: List[GenerationStep]
    results: List[GenerationResult] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "created_at": self.created_at,
            "name": self.name,
            "status": self.status.value,
            "steps": [step_to_dict(s) for s in self.steps],
            "results": [r.to_dict() for r in self.results],
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        return cls(
            id=str(data["id"]),
            created_at=int(data["created_at"]),
            name=str(data.get("name", "")),
            status=JobStatus(data["status"]),
            steps=[step_from_dict(s) for s in data.get("steps") or []],
            results=[GenerationResult.from_dict(r) for r in data.get("results") or []],
            error=data.get("error"),
        )


@dataclass
class PersistedState:
    form: FormState = field(default_factory=FormState)
    jobs: List[Job] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"form": self.form.to_dict(), "jobs": [j.to_dict() for j in self.jobs]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PersistedState":
        return cls(
            form=FormState.from_dict(data.get("form") or {}),
            jobs=[Job.from_dict(j) for j in data.get("jobs") or []],
        )
