from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, constr

from studio.workflow.models import PresetKey
from studio.workflow.modules import Angle, Framing, Module, Scene

IdStr = constr(strip_whitespace=True, min_length=1)


class GenerateOk(BaseModel):
    ok: Literal[True] = True
    imageBase64: str
    mimeType: str
    modelUsed: str
    safety: Optional[Any] = None


class GenerateErr(BaseModel):
    ok: Literal[False] = False
    error: str


class ProductImageIn(BaseModel):
    id: IdStr
    name: str = ""
    data_url: str


class FormPatch(BaseModel):
    niche_style: Optional[str] = None
    category: Optional[str] = None
    main_use: Optional[str] = None
    sizes: Optional[str] = None
    colors: Optional[str] = None
    model_name: Optional[str] = None
    benefits: Optional[str] = None
    extra_detail: Optional[str] = None
    restrictions: Optional[str] = None
    product_images: Optional[List[ProductImageIn]] = None
    module: Optional[Module] = None
    angle: Optional[Angle] = None
    framing: Optional[Framing] = None
    scene: Optional[Scene] = None
    negative_block_on: Optional[bool] = None
    mobile_legibility_on: Optional[bool] = None
    preset: Optional[PresetKey] = None


class StepOut(BaseModel):
    id: str
    module: Module
    selectors: Dict[str, str] = {}


class ResultOut(BaseModel):
    step_id: str
    module: Module
    prompt: str
    seed: int
    created_at: int
    image_data_url: Optional[str] = None


class JobOut(BaseModel):
    id: str
    created_at: int
    name: str
    status: Literal["queued", "running", "done", "error"]
    steps: List[StepOut]
    results: List[ResultOut]
    error: Optional[str] = None


class StatsOut(BaseModel):
    total: int
    done: int
    running: int
    queued: int
    error: int


class PresetOut(BaseModel):
    key: PresetKey
    name: str
    hint: str
    steps: List[StepOut]


class PromptPreviewOut(BaseModel):
    step: StepOut
    prompt: str


class ImportOut(BaseModel):
    jobs: int
