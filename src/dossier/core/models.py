"""Core data models for Dossier Analyst.

Models follow the request/response flow of a single analysis:
1. INPUT CLASSIFICATION (FileCategory)
2. OUTBOUND REQUEST (AnalysisRequest)
3. STRUCTURED RESULT (AnalysisResult, LocationAssessment, ThreatAssessment)

The result models use the camelCase wire names of the Gemini response schema
as aliases, so ``model_dump(mode="json", by_alias=True)`` reproduces the
response body exactly.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Enums
# =============================================================================


class FileCategory(str, Enum):
    """Analysis category derived from the uploaded file's MIME type.

    Each category selects its own set of analytical directives.
    """

    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    DOCUMENT = "document"


class ThreatLevel(str, Enum):
    """Severity tag attached to every analysis.

    LOW through CRITICAL are ordered by severity. UNKNOWN means the model
    could not assess the content and ranks below LOW.
    """

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"
    UNKNOWN = "UNKNOWN"

    @property
    def severity(self) -> int:
        """Numeric rank used for ordering (UNKNOWN = 0, CRITICAL = 4)."""
        return _SEVERITY[self]

    # str defines alphabetical comparisons; every operator is overridden.
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ThreatLevel):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ThreatLevel):
            return NotImplemented
        return self.severity <= other.severity

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ThreatLevel):
            return NotImplemented
        return self.severity > other.severity

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ThreatLevel):
            return NotImplemented
        return self.severity >= other.severity


_SEVERITY = {
    ThreatLevel.UNKNOWN: 0,
    ThreatLevel.LOW: 1,
    ThreatLevel.MEDIUM: 2,
    ThreatLevel.HIGH: 3,
    ThreatLevel.CRITICAL: 4,
}


# =============================================================================
# Request
# =============================================================================


class AnalysisRequest(BaseModel):
    """One outbound analysis call.

    Constructed per submission and discarded after the response or failure.

    Attributes:
        instruction_text: Category instruction plus any operator directive.
        media_payload: Base64 encoding of the complete file.
        mime_type: MIME type reported for the file.
    """

    model_config = ConfigDict(frozen=True)

    instruction_text: str = Field(..., min_length=1)
    media_payload: str
    mime_type: str = Field(..., min_length=1)

    def __repr__(self) -> str:
        # Never echo the payload; it can be megabytes of base64.
        return (
            f"AnalysisRequest(mime_type={self.mime_type!r}, "
            f"payload_chars={len(self.media_payload)})"
        )


# =============================================================================
# Result
# =============================================================================


class LocationAssessment(BaseModel):
    """Probable location of the captured content and the reasoning for it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    potential_location: str = Field(..., alias="potentialLocation")
    reasoning: str


class ThreatAssessment(BaseModel):
    """Threat level and its justification."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    level: ThreatLevel
    justification: str


class AnalysisResult(BaseModel):
    """Structured analysis returned by the Gemini service.

    Every field except ``subject_profiles`` is required and non-null. A body
    missing any of them fails validation as a whole; there are no partial
    results.

    Attributes:
        executive_summary: One-paragraph summary of the analysis.
        detailed_analysis: Full description of the content (objects, people,
            actions and surroundings, or transcription and background sounds).
        subject_profiles: Profiles of identified people or entities.
        location_assessment: Probable location and reasoning.
        metadata_insights: Conclusions drawn from inferred metadata.
        threat_assessment: Threat level and justification.

    Example:
        >>> result = AnalysisResult.model_validate(json.loads(body))
        >>> result.threat_assessment.level
        <ThreatLevel.HIGH: 'HIGH'>
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    executive_summary: str = Field(..., alias="executiveSummary")
    detailed_analysis: str = Field(..., alias="detailedAnalysis")
    subject_profiles: tuple[str, ...] = Field(default=(), alias="subjectProfiles")
    location_assessment: LocationAssessment = Field(..., alias="locationAssessment")
    metadata_insights: str = Field(..., alias="metadataInsights")
    threat_assessment: ThreatAssessment = Field(..., alias="threatAssessment")

    @field_validator("subject_profiles", mode="before")
    @classmethod
    def _null_profiles_to_empty(cls, value: object) -> object:
        return () if value is None else value

    def to_wire(self) -> dict:
        """Serialize back to the camelCase response shape."""
        return self.model_dump(mode="json", by_alias=True)
