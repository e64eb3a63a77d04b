"""Style profiles for line-art generation.

Each profile is one row of the lookup table below. Adding a style means adding
a row; the prompt composer never branches on style names.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

DEFAULT_STYLE = "pencil"

_SKETCH_LORA_VERSION = (
    "32d7a493bcbd5212bf43e6a3f48b7ba716f9f159eabd13ccdbe5d0bcd747ff08"
)
_SDXL_SKETCH_VERSION = (
    "8307ba5394e5ad08f885a5d9df48f9ec3d16c2dc124209c2ca3eb9077e32d2d5"
)


@dataclass(frozen=True)
class StyleProfile:
    """Immutable model configuration and prompt fragments for one style."""

    key: str
    version: str
    base_prompt: str
    thickness_fragments: Mapping[str, str]
    shading_fragments: Mapping[str, str]
    keyword_fragments: tuple[str, ...]
    parameters: Mapping[str, str | int | float | bool]
    negative_prompt: str | None = None
    aliases: tuple[str, ...] = field(default=())


def _frozen(values: dict) -> Mapping:
    return MappingProxyType(dict(values))


_LORA_PARAMETERS = {
    "model": "dev",
    "lora_scale": 1.0,
    "aspect_ratio": "1:1",
    "num_outputs": 1,
    "output_format": "webp",
    "output_quality": 90,
    "go_fast": False,
}

PENCIL = StyleProfile(
    key="pencil",
    version=_SKETCH_LORA_VERSION,
    base_prompt=(
        "TOK black and white pencil sketch, "
        "simple black line drawing, monochrome coloring book style"
    ),
    thickness_fragments=_frozen(
        {
            "thin": "fine delicate black lines, light thin pencil strokes",
            "normal": "medium weight black lines, clear pencil strokes",
            "thick": (
                "bold thick black lines, dark heavy pencil strokes, "
                "strong black outlines"
            ),
        }
    ),
    shading_fragments=_frozen(
        {
            "preserve": (
                "subtle black and white shading, soft monochrome gradients, "
                "artistic sketch"
            ),
            "suppress": "clean black outlines only, no shading, simple black line art",
        }
    ),
    keyword_fragments=(
        "pure black and white, no color, monochrome, minimalist hand-drawn style",
        "coloring book page, suitable for children coloring, clear black boundaries",
    ),
    parameters=_frozen(
        {
            "prompt_strength": 0.75,
            "num_inference_steps": 20,
            "guidance_scale": 3.0,
            **_LORA_PARAMETERS,
        }
    ),
    aliases=("pencil-sketch",),
)

MODERN = StyleProfile(
    key="modern",
    version=_SDXL_SKETCH_VERSION,
    base_prompt=(
        "black and white sketch, line drawing, coloring book style, "
        "monochrome line art, clean black lines on white background"
    ),
    thickness_fragments=_frozen(
        {
            "thin": "fine thin lines, delicate black strokes, minimal line weight",
            "normal": "medium black lines, balanced stroke weight",
            "thick": (
                "bold thick black lines, strong dark outlines, heavy black strokes"
            ),
        }
    ),
    shading_fragments=_frozen(
        {
            "preserve": "subtle black and white gradients, monochrome shading",
            "suppress": "pure black line art, no shading, simple black outlines only",
        }
    ),
    keyword_fragments=(
        "pure black and white, no color, monochrome, minimalist",
        "coloring book page, simple design, clear black boundaries",
    ),
    parameters=_frozen(
        {
            "prompt_strength": 0.75,
            "width": 512,
            "height": 512,
            "num_inference_steps": 30,
            "guidance_scale": 5.0,
            "num_outputs": 1,
            "scheduler": "K_EULER",
        }
    ),
    negative_prompt=(
        "color, colorful, colored, rainbow, red, blue, green, yellow, orange, "
        "purple, pink, complex, detailed, realistic, photographic, cluttered, "
        "messy, painting, watercolor, oil painting, digital art, 3d render"
    ),
    aliases=("modern-sketch",),
)

# Fixed instruction prompt; line and shading options do not apply.
EXPERIMENTAL = StyleProfile(
    key="experimental",
    version=_SKETCH_LORA_VERSION,
    base_prompt="Transform the image into a beautiful, simple pencil-sketch drawing.",
    thickness_fragments=_frozen({}),
    shading_fragments=_frozen({}),
    keyword_fragments=(),
    parameters=_frozen(
        {
            "prompt_strength": 0.8,
            "num_inference_steps": 28,
            "guidance_scale": 3.5,
            **_LORA_PARAMETERS,
        }
    ),
    aliases=("test-sketch",),
)

STYLE_PROFILES: Mapping[str, StyleProfile] = _frozen(
    {profile.key: profile for profile in (PENCIL, MODERN, EXPERIMENTAL)}
)

_ALIASES: Mapping[str, str] = _frozen(
    {
        alias: profile.key
        for profile in STYLE_PROFILES.values()
        for alias in profile.aliases
    }
)


def resolve_style(style: str | None) -> StyleProfile:
    """Return the profile for a style key or alias, defaulting to pencil."""
    if style is None:
        return STYLE_PROFILES[DEFAULT_STYLE]
    key = style.strip().lower()
    key = _ALIASES.get(key, key)
    return STYLE_PROFILES.get(key, STYLE_PROFILES[DEFAULT_STYLE])
