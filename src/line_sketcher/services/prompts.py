"""Prompt composition for line-art requests."""

from dataclasses import dataclass

from line_sketcher.domain.requests import GenerationRequestTemplate, ProcessingParams
from line_sketcher.domain.styles import StyleProfile, resolve_style

_DEFAULT_THICKNESS = "normal"
_FRAGMENT_SEPARATOR = ", "


@dataclass(frozen=True)
class PromptComposer:
    """Map processing params onto a model invocation template.

    The prompt is assembled in a fixed order (base, line thickness, shading,
    reinforcing keywords) since the downstream model weighs early tokens more.
    """

    def compose(self, params: ProcessingParams) -> GenerationRequestTemplate:
        """Build the request template for the given params."""
        profile = resolve_style(params.style)
        return GenerationRequestTemplate(
            style=profile.key,
            version=profile.version,
            prompt=build_prompt(profile, params),
            negative_prompt=profile.negative_prompt,
            parameters=dict(profile.parameters),
        )


def build_prompt(profile: StyleProfile, params: ProcessingParams) -> str:
    """Concatenate the style fragments for the given params."""
    thickness = params.line_thickness
    if thickness not in profile.thickness_fragments:
        thickness = _DEFAULT_THICKNESS
    shading = "preserve" if params.preserve_shading else "suppress"
    fragments = [
        profile.base_prompt,
        profile.thickness_fragments.get(thickness, ""),
        profile.shading_fragments.get(shading, ""),
        *profile.keyword_fragments,
    ]
    return _FRAGMENT_SEPARATOR.join(fragment for fragment in fragments if fragment)
