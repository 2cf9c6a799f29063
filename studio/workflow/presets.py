from dataclasses import dataclass
from typing import Dict, List

from studio.workflow.models import FormState, PresetKey
from studio.workflow.modules import (
    AdCoverStep,
    Angle,
    Framing,
    GenerationStep,
    InfographicStep,
    LifestyleStep,
    Module,
    Scene,
    WhiteBackgroundStep,
)


@dataclass(frozen=True)
class Preset:
    key: PresetKey
    name: str
    hint: str
    steps: List[GenerationStep]


PRESETS: Dict[PresetKey, Preset] = {
    PresetKey.SHOPEE_STANDARD: Preset(
        key=PresetKey.SHOPEE_STANDARD,
        name="Shopee pack (Cover + Infographic + Lifestyle)",
        hint="1 click → 3 arts (cover, infographic, on-foot photo).",
        steps=[
            AdCoverStep(id="s1"),
            InfographicStep(id="s2"),
            LifestyleStep(id="s3", framing=Framing.KNEE_DOWN, scene=Scene.URBAN_MINIMAL),
        ],
    ),
    PresetKey.MERCADO_LIVRE_STANDARD: Preset(
        key=PresetKey.MERCADO_LIVRE_STANDARD,
        name="Mercado Livre pack (Cover + 2x White Background + Infographic)",
        hint="Mercado Livre usually asks for more studio angles.",
        steps=[
            AdCoverStep(id="s1"),
            InfographicStep(id="s2"),
            WhiteBackgroundStep(id="s3", angle=Angle.FRONT_45_COVER),
            WhiteBackgroundStep(id="s4", angle=Angle.SIDE_PROFILE),
        ],
    ),
    PresetKey.THREE_COVERS: Preset(
        key=PresetKey.THREE_COVERS,
        name="3 Capas",
        hint="Three cover variations to A/B test creatives quickly.",
        steps=[AdCoverStep(id="s1"), AdCoverStep(id="s2"), AdCoverStep(id="s3")],
    ),
    PresetKey.WHITE_BACKGROUND_ALL_ANGLES: Preset(
        key=PresetKey.WHITE_BACKGROUND_ALL_ANGLES,
        name="White background (all angles)",
        hint="Generates 6 images: the full studio set.",
        steps=[WhiteBackgroundStep(id=f"s{i}", angle=a) for i, a in enumerate(Angle, start=1)],
    ),
}

CUSTOM_HINT = "Custom generates only the selected module."


def custom_step(form: FormState) -> GenerationStep:
    if form.module is Module.WHITE_BACKGROUND:
        return WhiteBackgroundStep(id="custom_step", angle=form.angle)
    if form.module is Module.LIFESTYLE_ON_FOOT:
        return LifestyleStep(id="custom_step", framing=form.framing, scene=form.scene)
    if form.module is Module.PROMO_INFOGRAPHIC:
        return InfographicStep(id="custom_step")
    return AdCoverStep(id="custom_step")


def derive_steps(form: FormState) -> List[GenerationStep]:
    if form.preset is PresetKey.CUSTOM:
        return [custom_step(form)]
    return list(PRESETS[form.preset].steps)


def preset_label(form: FormState) -> str:
    if form.preset is PresetKey.CUSTOM:
        return form.module.value
    return PRESETS[form.preset].name
