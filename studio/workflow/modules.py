from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Union


class Module(str, Enum):
    AD_COVER = "AD_COVER"
    PROMO_INFOGRAPHIC = "PROMO_INFOGRAPHIC"
    WHITE_BACKGROUND = "WHITE_BACKGROUND"
    LIFESTYLE_ON_FOOT = "LIFESTYLE_ON_FOOT"


# Selector enums. Values are what ends up inside the prompt text.
class Angle(str, Enum):
    FRONT_45_COVER = "FRONT_45_COVER"
    SIDE_PROFILE = "SIDE_PROFILE"
    TOP_DOWN = "TOP_DOWN"
    REAR = "REAR"
    SOLE_MACRO = "SOLE_MACRO"
    PREMIUM_3_4_PERSPECTIVE = "PREMIUM_3_4_PERSPECTIVE"


class Framing(str, Enum):
    KNEE_DOWN = "KNEE_DOWN"
    NECK_DOWN = "NECK_DOWN"


class Scene(str, Enum):
    URBAN_MINIMAL = "URBAN_MINIMAL"
    REAL_GYM = "REAL_GYM"
    STREET_SKATE = "STREET_SKATE"
    CASUAL_WORK = "CASUAL_WORK"
    FEMININE_FASHION = "FEMININE_FASHION"


@dataclass(frozen=True)
class AdCoverStep:
    id: str
    module: ClassVar[Module] = Module.AD_COVER

    def selectors(self) -> Dict[str, str]:
        return {}

    def with_id(self, step_id: str) -> "AdCoverStep":
        return AdCoverStep(id=step_id)


@dataclass(frozen=True)
class InfographicStep:
    id: str
    module: ClassVar[Module] = Module.PROMO_INFOGRAPHIC

    def selectors(self) -> Dict[str, str]:
        return {}

    def with_id(self, step_id: str) -> "InfographicStep":
        return InfographicStep(id=step_id)


@dataclass(frozen=True)
class WhiteBackgroundStep:
    id: str
    angle: Optional[Angle] = None
    module: ClassVar[Module] = Module.WHITE_BACKGROUND

    def selectors(self) -> Dict[str, str]:
        return {"angle": self.angle.value} if self.angle else {}

    def with_id(self, step_id: str) -> "WhiteBackgroundStep":
        return WhiteBackgroundStep(id=step_id, angle=self.angle)


@dataclass(frozen=True)
class LifestyleStep:
    id: str
    framing: Optional[Framing] = None
    scene: Optional[Scene] = None
    module: ClassVar[Module] = Module.LIFESTYLE_ON_FOOT

    def selectors(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        if self.framing:
            out["framing"] = self.framing.value
        if self.scene:
            out["scene"] = self.scene.value
        return out

    def with_id(self, step_id: str) -> "LifestyleStep":
        return LifestyleStep(id=step_id, framing=self.framing, scene=self.scene)


GenerationStep = Union[AdCoverStep, InfographicStep, WhiteBackgroundStep, LifestyleStep]


def step_to_dict(step: GenerationStep) -> Dict[str, Any]:
    return {"id": step.id, "module": step.module.value, "selectors": step.selectors()}


def step_from_dict(data: Dict[str, Any]) -> GenerationStep:
    module = Module(data["module"])
    selectors = data.get("selectors") or {}
    step_id = str(data["id"])
    if module is Module.AD_COVER:
        return AdCoverStep(id=step_id)
    if module is Module.PROMO_INFOGRAPHIC:
        return InfographicStep(id=step_id)
    if module is Module.WHITE_BACKGROUND:
        angle = selectors.get("angle")
        return WhiteBackgroundStep(id=step_id, angle=Angle(angle) if angle else None)
    framing = selectors.get("framing")
    scene = selectors.get("scene")
    return LifestyleStep(
        id=step_id,
        framing=Framing(framing) if framing else None,
        scene=Scene(scene) if scene else None,
    )
