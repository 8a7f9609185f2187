"""Output styles for transcript enhancement and their instruction templates."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class StyleValidationError(ValueError):
    """Raised when a style request is malformed or not allowed for the account."""


class EnhancementStyle(str, Enum):
    NOTE = "note"
    EMAIL = "email"
    BLOG = "blog"
    SUMMARY = "summary"
    TRANSCRIPT = "transcript"
    CUSTOM = "custom"


_INSTRUCTIONS: dict[EnhancementStyle, str] = {
    EnhancementStyle.NOTE: """You are an expert note-taking assistant. Transform this voice transcript into a clean, well-organized note.

Rules:
- Remove filler words (um, uh, like, you know, etc.)
- Fix grammar and punctuation
- Format as concise bullet points with headings where appropriate
- Maintain the original meaning and tone
- Keep it brief and scannable

Output only the enhanced note with no additional commentary.""",
    EnhancementStyle.EMAIL: """You are a professional email writer. Transform this voice transcript into a well-structured email.

Rules:
- Remove filler words
- Fix grammar and punctuation
- Structure with: greeting (if mentioned), clear body paragraphs, closing (if appropriate)
- Use professional but friendly tone
- Maintain the original intent

Output only the enhanced email with no additional commentary.""",
    EnhancementStyle.BLOG: """You are an engaging content writer. Transform this voice transcript into a compelling blog post section.

Rules:
- Remove filler words
- Fix grammar and punctuation
- Add engaging introductory sentence if needed
- Use storytelling techniques where appropriate
- Break into clear paragraphs
- Maintain the speaker's voice and personality

Output only the enhanced blog content with no additional commentary.""",
    EnhancementStyle.SUMMARY: """You are a professional summarizer. Extract only the key points from this voice transcript.

Rules:
- Remove all filler words
- Extract only the main ideas
- Format as 3-5 concise bullet points
- Each point should be one clear sentence
- Prioritize the most important information

Output only the summary bullets with no additional commentary.""",
    EnhancementStyle.TRANSCRIPT: """You are a transcription editor. Clean up this voice transcript while preserving all content.

Rules:
- Remove filler words (um, uh, like, you know)
- Fix grammar and punctuation
- Format into clear paragraphs
- Preserve all information and details
- Maintain the speaker's tone and style

Output only the cleaned transcript with no additional commentary.""",
    EnhancementStyle.CUSTOM: """You are a helpful AI assistant. Transform this voice transcript according to the user's specific instructions.

Rules:
- Follow the custom instructions provided
- Remove filler words unless requested otherwise
- Fix grammar and punctuation
- Maintain the original meaning
- Apply the requested style or format

Output only the transformed content with no additional commentary.""",
}

_STYLE_INFO: dict[EnhancementStyle, tuple[str, str, str]] = {
    EnhancementStyle.NOTE: (
        "Note",
        "Concise bullet points with headings",
        "Perfect for meeting notes, ideas, and quick thoughts",
    ),
    EnhancementStyle.EMAIL: (
        "Email",
        "Professional email format",
        "Structured with greeting, body, and closing",
    ),
    EnhancementStyle.BLOG: (
        "Blog Post",
        "Engaging narrative content",
        "Storytelling with personality and flow",
    ),
    EnhancementStyle.SUMMARY: (
        "Summary",
        "Key points only (3-5 bullets)",
        "Extract main ideas in brief format",
    ),
    EnhancementStyle.TRANSCRIPT: (
        "Transcript",
        "Verbatim with cleanup",
        "Preserve all content, fix grammar",
    ),
    EnhancementStyle.CUSTOM: (
        "Custom",
        "Your own instructions",
        "Premium only: Define your own style",
    ),
}

# Styles offered in the picker to free accounts. Only CUSTOM is enforced.
_FREE_STYLES = (EnhancementStyle.NOTE, EnhancementStyle.EMAIL, EnhancementStyle.SUMMARY)

TRANSLATION_INSTRUCTION = (
    "You are a professional translator. Translate the following text to {language}. "
    "Maintain the tone and style. Output only the translation with no additional commentary."
)


@dataclass(frozen=True)
class StyleDirective:
    """A requested style; ``custom_prompt`` is only carried by ``CUSTOM``."""

    style: EnhancementStyle
    custom_prompt: Optional[str] = None

    def __post_init__(self) -> None:
        if self.style is EnhancementStyle.CUSTOM:
            prompt = (self.custom_prompt or "").strip()
            if not prompt:
                raise StyleValidationError("Custom prompt is required for custom style")
            object.__setattr__(self, "custom_prompt", prompt)
        else:
            object.__setattr__(self, "custom_prompt", None)

    @classmethod
    def parse(
        cls,
        style: "EnhancementStyle | str | None",
        custom_prompt: Optional[str] = None,
    ) -> "StyleDirective":
        if style is None or style == "":
            return cls(EnhancementStyle.NOTE)
        try:
            resolved = EnhancementStyle(style)
        except ValueError:
            raise StyleValidationError(f"Unknown style '{style}'") from None
        return cls(resolved, custom_prompt)

    @property
    def requires_premium(self) -> bool:
        return self.style is EnhancementStyle.CUSTOM

    def ensure_allowed(self, is_premium: bool) -> None:
        if self.requires_premium and not is_premium:
            raise StyleValidationError("Custom prompts are only available for premium users")

    @property
    def system_instruction(self) -> str:
        template = _INSTRUCTIONS[self.style]
        if self.style is EnhancementStyle.CUSTOM:
            return f"{template}\n\nCustom Instructions: {self.custom_prompt}"
        return template


def available_styles(is_premium: bool = False) -> list[EnhancementStyle]:
    if is_premium:
        return list(EnhancementStyle)
    return list(_FREE_STYLES)


def prompt_preview(style: "EnhancementStyle | str") -> str:
    """Base instruction for ``style``, without any custom prompt appended."""

    try:
        return _INSTRUCTIONS[EnhancementStyle(style)]
    except ValueError:
        raise StyleValidationError(f"Unknown style '{style}'") from None


def style_info(style: EnhancementStyle) -> dict[str, str]:
    name, description, example = _STYLE_INFO.get(style, _STYLE_INFO[EnhancementStyle.NOTE])
    return {"name": name, "description": description, "example": example}


__all__ = [
    "EnhancementStyle",
    "StyleDirective",
    "StyleValidationError",
    "TRANSLATION_INSTRUCTION",
    "available_styles",
    "prompt_preview",
    "style_info",
]
