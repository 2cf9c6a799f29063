from dataclasses import dataclass
from typing import Dict, List

from studio.workflow.models import FormState
from studio.workflow.modules import GenerationStep, LifestyleStep, Module, WhiteBackgroundStep
from studio.workflow.presets import derive_steps


@dataclass(frozen=True)
class TemplateSpec:
    module: Module
    template: str  # literal {VAR} placeholders, filled by apply_vars
    placeholders: List[str]


NOT_INFORMED = "(not informed)"
NO_RESTRICTIONS = "(none)"
SECTION_SEPARATOR = "\n\n---\n\n"

MASTER_TEMPLATE = """MASTER ROUTER — Gemini (SaaS)
You are an Art Director + E-commerce Photographer + Senior Designer.
You create premium images with global-brand quality, high conversion and flawless hierarchy.

UNIVERSAL RULES (always active)

Use the attached product(s) as the absolute reference.

LOCK ABSOLUTE PRODUCT + BRAND DETAIL: preserve 100%: shape, proportions, materials, texture, stitching, cutouts, sole, logo (position/weight/typeface), colors and geometry.
Do not redesign, do not rebuild, do not "reinterpret", do not smooth details.

You may only adjust: light, contrast, sharpness, composition, background and graphic elements (when allowed).

Always render at 1200×1200 (1:1), ultra sharp, no watermark, no errors.

Everything must be legible on a phone.

If {RESTRICTIONS} exist, they take priority.

JOB DATA (SaaS fields)

Selected module: {MODULE}

Niche/style: {NICHE_STYLE}
Category: {CATEGORY}
Main use: {USAGE}
Sizes/measures: {SIZES}
Available colors: {COLORS}
Model name: {MODEL_NAME}
Benefits: {BENEFITS}
Extra detail: {EXTRA_DETAIL}
Restrictions: {RESTRICTIONS}

Now execute ONLY the matching {MODULE} module, with maximum quality."""

REGISTRY: Dict[Module, TemplateSpec] = {
    Module.AD_COVER: TemplateSpec(
        module=Module.AD_COVER,
        template="""AD_COVER (1200×1200)
Create an AD COVER built for the immediate click. Sportswear/consumer premium look, clean, bold and extremely legible.

Layout
- Product as a giant hero shot (65–80% of the art), most striking angle (3/4 or side), soft realistic shadow.
- Background: automatically pick the best one for {NICHE_STYLE}.
- Modern, premium typography with breathing room.

Text (minimal and strategic)
- Short, strong headline (based on {CATEGORY}/{USAGE}/{NICHE_STYLE}).
- 1 short benefit (2–4 words) from {BENEFITS} or inferred.
- If {SIZES} exists: "SIZE: {SIZES}".
- 1 small badge adapted to the use.
- Optional discreet CTA: "SEE DETAILS".

Rules
- At most 3 text blocks.
- No paragraphs.
- Product 100% faithful (LOCK).
Deliver 1 final COVER art.""",
        placeholders=["NICHE_STYLE", "CATEGORY", "USAGE", "BENEFITS", "SIZES"],
    ),
    Module.PROMO_INFOGRAPHIC: TemplateSpec(
        module=Module.PROMO_INFOGRAPHIC,
        template="""PROMO_INFOGRAPHIC (1200×1200)
Create a premium commercial infographic (high visual ticket), organized and persuasive.

Structure
- Top: headline + short subheadline (main benefit).
- Center: large product + (when it makes sense) 2 mini color variations.
- Benefits with minimalist icons: 4–6 bullets (use {BENEFITS} + adapt to {USAGE}).
- Technical zoom/close-up: enlarged crop of the material (do not invent patterns).
- If {SIZES}: "Sizes: {SIZES}".
- Footer: short closing line + light CTA.

Art direction
- Background/elements suited to {NICHE_STYLE} without clutter.
- Product is always the hero.
Deliver 1 final INFOGRAPHIC art.""",
        placeholders=["BENEFITS", "USAGE", "SIZES", "NICHE_STYLE"],
    ),
    Module.WHITE_BACKGROUND: TemplateSpec(
        module=Module.WHITE_BACKGROUND,
        template="""WHITE_BACKGROUND — ABSOLUTE STANDARD (1200×1200)

LOCK ABSOLUTE PRODUCT + BRAND DETAIL (MANDATORY)
Preserve 100% of the attached product: shape, proportions, colors, texture, stitching, cutouts, sole geometry and logo.
Forbidden: rebuilding, redesigning, smoothing, inventing details, changing material, changing logo, warping perspective.

Studio standard
- Background: pure seamless white (#FFFFFF), no texture
- Light: diffused softbox (top + light front), neutral color
- Shadow: natural, soft, no "fake shadow"
- Sharpness: high, perfect focus
- 1:1 (1200×1200), premium e-commerce

Angle selector: {ANGLE}
Execute ONLY the selected angle and deliver 1 final image at the chosen angle.""",
        placeholders=["ANGLE"],
    ),
    Module.LIFESTYLE_ON_FOOT: TemplateSpec(
        module=Module.LIFESTYLE_ON_FOOT,
        template="""LIFESTYLE_ON_FOOT — WORN (1200×1200)

Input: attached product (LOCK ABSOLUTE PRODUCT).
Goal: realistic "big brand" commercial photo with the product being worn.

Selectors
- Framing: {FRAMING}
- Scene: {SCENE}

Adaptive outfit
- Choose clothing consistent with {NICHE_STYLE}.

Photo direction
- Ultra realistic photo, natural light or soft studio.
- Product texture extremely sharp.
- Natural pose (light step, foot planted), must not look 3D.

Rules
- Do not show the face.
- No obvious third-party brands in the scene/clothing.
Deliver 1 final lifestyle image according to the selectors.""",
        placeholders=["FRAMING", "SCENE", "NICHE_STYLE"],
    ),
}

MOBILE_LEGIBILITY_CHECK = (
    "\n\nMOBILE LEGIBILITY CHECK: keep text large, high contrast, at most 3 blocks "
    "(when applicable), no micro text."
)

NEGATIVE_BLOCK = """NEGATIVE GLOBAL:
Always avoid: visual clutter, long text, bad fonts, heavy shadows, product distortion, invented logo, fake 3D render, loud background, spelling errors, watermark, low resolution, crooked cutouts, warped perspective."""


def apply_vars(template: str, variables: Dict[str, str]) -> str:
    # Literal replacement in mapping order; unknown placeholders are left as-is.
    out = template
    for key, value in variables.items():
        out = out.replace("{" + key + "}", value or "")
    return out


def template_variables(step: GenerationStep, form: FormState) -> Dict[str, str]:
    angle = step.angle if isinstance(step, WhiteBackgroundStep) and step.angle else form.angle
    framing = step.framing if isinstance(step, LifestyleStep) and step.framing else form.framing
    scene = step.scene if isinstance(step, LifestyleStep) and step.scene else form.scene
    return {
        "MODULE": step.module.value,
        "NICHE_STYLE": form.niche_style or NOT_INFORMED,
        "CATEGORY": form.category or NOT_INFORMED,
        "USAGE": form.main_use or NOT_INFORMED,
        "SIZES": form.sizes or NOT_INFORMED,
        "COLORS": form.colors or NOT_INFORMED,
        "MODEL_NAME": form.model_name or NOT_INFORMED,
        "BENEFITS": form.benefits or NOT_INFORMED,
        "EXTRA_DETAIL": form.extra_detail or NOT_INFORMED,
        "RESTRICTIONS": form.restrictions or NO_RESTRICTIONS,
        "ANGLE": angle.value,
        "FRAMING": framing.value,
        "SCENE": scene.value,
    }


def build_prompt(step: GenerationStep, form: FormState) -> str:
    variables = template_variables(step, form)
    master = apply_vars(MASTER_TEMPLATE, variables)
    module_text = apply_vars(REGISTRY[step.module].template, variables)

    parts = [master, SECTION_SEPARATOR, module_text]
    if form.mobile_legibility_on:
        parts.append(MOBILE_LEGIBILITY_CHECK)
    if form.negative_block_on:
        parts.extend([SECTION_SEPARATOR, NEGATIVE_BLOCK])
    return "".join(parts)


def preview_prompt(form: FormState) -> str:
    """Prompt for the first step the current form would enqueue."""
    return build_prompt(derive_steps(form)[0], form)
