"""Centralized Prompt Template System for Dossier Analyst.

This module is the SINGLE SOURCE of all text sent to Gemini: the analyst
persona (system instruction), the per-category analysis instructions and the
structured output schema.

Each file category maps to a CategoryPrompt record holding its ordered list
of analytical directives. One formatting function turns a record into the
numbered instruction, so adding or changing a category never means touching
branching code.

Example:
    >>> from dossier.ai.prompts import build_instruction
    >>> from dossier.core.models import FileCategory
    >>>
    >>> text = build_instruction(FileCategory.AUDIO, "Focus on vehicle sounds")
    >>> text.startswith("Analyze the following audio file.")
    True
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from google.genai import types

from dossier.core.models import FileCategory, ThreatLevel


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class CategoryPrompt:
    """Instruction content for one file category.

    Attributes:
        subject: How the file is referred to in the instruction.
        directives: Ordered analytical directives, numbered when rendered.
    """

    subject: str
    directives: tuple[str, ...]

    @property
    def directive_count(self) -> int:
        return len(self.directives)

    def render(self) -> str:
        numbered = " ".join(
            f"{index}. {directive}" for index, directive in enumerate(self.directives, start=1)
        )
        return (
            f"Analyze the following {self.subject}. "
            f"Provide a detailed report covering: {numbered}"
        )


# =============================================================================
# Category Table
# =============================================================================


PROMPT_TABLE: Mapping[FileCategory, CategoryPrompt] = MappingProxyType(
    {
        FileCategory.IMAGE: CategoryPrompt(
            subject="image file",
            directives=(
                "A summary of the visual content.",
                "A detailed description of all subjects, objects and actions.",
                "An analysis of the potential location and time based on visual clues.",
                "A threat assessment based on the content.",
                "An analysis of any visible text or symbols.",
            ),
        ),
        FileCategory.AUDIO: CategoryPrompt(
            subject="audio file",
            directives=(
                "A transcription of all speech.",
                "Identification and description of all background and non-verbal "
                "sounds (e.g. sirens, gunshots, music).",
                "An assessment of the mood and tone of the speakers.",
                "A threat assessment based on the audio content.",
                "An analysis of any anomalies or hidden sounds.",
            ),
        ),
        FileCategory.VIDEO: CategoryPrompt(
            subject="video file",
            directives=(
                "A summary of the video content, including a description of key scenes.",
                "A detailed description of all subjects, objects and actions in "
                "chronological order.",
                "A transcription of all speech and identification of background sounds.",
                "An analysis of the potential location and time based on visual and "
                "audio clues.",
                "A threat assessment based on the content.",
                "An analysis of any visible text, symbols or logos.",
            ),
        ),
        FileCategory.DOCUMENT: CategoryPrompt(
            subject="text document",
            directives=(
                "A concise summary of the content.",
                "Extraction of key entities (people, organizations, locations, dates).",
                "A sentiment analysis of the document.",
                "Identification of potentially sensitive information or threats.",
                "A summary of the main topics and arguments.",
            ),
        ),
    }
)

OPERATOR_DIRECTIVES_HEADING = "### Additional analytical directives:"


# =============================================================================
# Instruction Builders
# =============================================================================


def build_base_instruction(category: FileCategory) -> str:
    """Render the fixed instruction for a category, without operator input."""
    return PROMPT_TABLE[category].render()


def build_instruction(category: FileCategory, directive: str | None = None) -> str:
    """Build the full instruction text for an analysis.

    The category instruction always comes first and is never altered. A
    non-blank operator directive is appended as its own delimited section.

    Args:
        category: File category selected from the MIME type.
        directive: Optional free-text operator directive.

    Returns:
        The instruction string sent alongside the media.
    """
    instruction = build_base_instruction(category)
    extra = (directive or "").strip()
    if extra:
        instruction += f"\n\n{OPERATOR_DIRECTIVES_HEADING}\n{extra}"
    return instruction


SYSTEM_INSTRUCTION_TEMPLATE = (
    "You are a 'Five Eyes' intelligence agent "
    "(https://en.wikipedia.org/wiki/Five_Eyes) specializing in multimodal "
    "analysis of media files. Your analysis must be comprehensive, objective "
    "and structured. Respond exclusively in JSON conforming to the provided "
    "schema. The entire response must be in {language}."
)


def build_system_instruction(language: str = "English") -> str:
    """Render the analyst persona with the output language pinned."""
    return SYSTEM_INSTRUCTION_TEMPLATE.format(language=language)


# =============================================================================
# Output Schema
# =============================================================================


REQUIRED_RESULT_FIELDS: tuple[str, ...] = (
    "executiveSummary",
    "detailedAnalysis",
    "locationAssessment",
    "metadataInsights",
    "threatAssessment",
)


def _string(description: str) -> types.Schema:
    return types.Schema(type=types.Type.STRING, description=description)


RESPONSE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "executiveSummary": _string("A short, one-paragraph summary of the analysis."),
        "detailedAnalysis": _string(
            "A detailed description of the file content, including objects, people, "
            "actions and surroundings (for images) or transcription, background "
            "sounds and tone (for audio)."
        ),
        "subjectProfiles": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING),
            description="Profiles of identified people or entities, if applicable.",
        ),
        "locationAssessment": types.Schema(
            type=types.Type.OBJECT,
            properties={
                "potentialLocation": _string(
                    "Probable location (city, country) based on visual or audio clues."
                ),
                "reasoning": _string("Reasoning behind the location assessment."),
            },
            required=["potentialLocation", "reasoning"],
        ),
        "metadataInsights": _string(
            "Conclusions drawn from simulated or inferred metadata (e.g. time of "
            "day, possible device type)."
        ),
        "threatAssessment": types.Schema(
            type=types.Type.OBJECT,
            properties={
                "level": types.Schema(
                    type=types.Type.STRING,
                    enum=[level.value for level in ThreatLevel],
                    description="Threat level (LOW, MEDIUM, HIGH, CRITICAL, UNKNOWN).",
                ),
                "justification": _string("Justification for the threat level."),
            },
            required=["level", "justification"],
        ),
    },
    required=list(REQUIRED_RESULT_FIELDS),
)
