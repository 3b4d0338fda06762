from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DocumentKind(str, Enum):
    JOB_DESCRIPTION = "job_description"
    RESUME = "resume"
    NETWORK_PROFILE = "network_profile"


class DocumentOrigin(str, Enum):
    TEMPORARY = "temporary"
    PROFILE = "profile"


class DocumentSource(str, Enum):
    """Which candidate document a result was computed from"""
    TEMPORARY_RESUME = "temporary-resume"
    TEMPORARY_NETWORK = "temporary-network"
    PROFILE_RESUME = "profile-resume"
    PROFILE_NETWORK = "profile-network"


class AnalysisType(str, Enum):
    RESUME = "resume"
    NETWORK = "network"


class Stage(str, Enum):
    JD_SUMMARY = "jd_summary"
    PROFILE_SUMMARY = "profile_summary"
    SCORING = "scoring"


class ParseOutcome(str, Enum):
    PARSED = "parsed"
    FALLBACK = "fallback"


class DocumentRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: DocumentKind
    locator: str
    origin: DocumentOrigin

    @property
    def document_source(self) -> Optional[DocumentSource]:
        if self.kind == DocumentKind.JOB_DESCRIPTION:
            return None
        temporary = self.origin == DocumentOrigin.TEMPORARY
        if self.kind == DocumentKind.RESUME:
            return DocumentSource.TEMPORARY_RESUME if temporary else DocumentSource.PROFILE_RESUME
        return DocumentSource.TEMPORARY_NETWORK if temporary else DocumentSource.PROFILE_NETWORK

    @property
    def analysis_type(self) -> AnalysisType:
        return AnalysisType.RESUME if self.kind == DocumentKind.RESUME else AnalysisType.NETWORK


class ExtractedText(BaseModel):
    source: DocumentRef
    text: str
    char_count: int


class AnalysisStageResult(BaseModel):
    stage: Stage
    raw_text: str


# category -> ceiling
BREAKDOWN_CEILINGS: Dict[str, int] = {
    "technical_skills": 30,
    "experience": 25,
    "education": 15,
    "domain_fit": 15,
    "soft_skills": 10,
    "growth_potential": 10,
}


class ScoreBreakdown(BaseModel):
    technical_skills: int = Field(default=0, ge=0, le=30)
    experience: int = Field(default=0, ge=0, le=25)
    education: int = Field(default=0, ge=0, le=15)
    domain_fit: int = Field(default=0, ge=0, le=15)
    soft_skills: int = Field(default=0, ge=0, le=10)
    growth_potential: int = Field(default=0, ge=0, le=10)

    def total(self) -> int:
        return sum(getattr(self, name) for name in BREAKDOWN_CEILINGS)


class ParsedScore(BaseModel):
    """Validated scoring output, tagged with how it was obtained"""
    outcome: ParseOutcome
    score: int = Field(ge=0, le=100)
    breakdown: ScoreBreakdown
    gaps: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(min_length=5, max_length=5)
    reasoning: str = ""


SCORING_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "score": {"type": "integer", "minimum": 0, "maximum": 100},
        "reasoning": {"type": "string"},
        "breakdown": {
            "type": "object",
            "properties": {
                name: {"type": "integer", "minimum": 0, "maximum": ceiling}
                for name, ceiling in BREAKDOWN_CEILINGS.items()
            },
            "required": list(BREAKDOWN_CEILINGS),
        },
        "gaps": {"type": "array", "items": {"type": "string"}},
        "suggestions": {"type": "array", "items": {"type": "string"}, "minItems": 5, "maxItems": 5},
    },
    "required": ["score", "reasoning", "breakdown", "gaps", "suggestions"],
}
