from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fitscore.models.models import (
    AnalysisType,
    DocumentKind,
    DocumentSource,
    ParseOutcome,
    ScoreBreakdown,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)


# -------- Persisted --------
class ScoringResult(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    profile_id: str
    score: int = Field(ge=0, le=100)
    breakdown: ScoreBreakdown
    gaps: List[str] = []
    suggestions: List[str] = Field(min_length=5, max_length=5)
    reasoning: str = ""
    document_source: DocumentSource
    analysis_type: AnalysisType
    parse_outcome: ParseOutcome = ParseOutcome.PARSED
    job_summary: str = ""
    candidate_summary: str = ""
    job_description_locator: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class ScoringOutcome(BaseModel):
    result: ScoringResult
    processing_time_ms: int


# -------- Requests --------
class AnalyzeRequest(CamelModel):
    """Body of the analyze endpoint; required fields are checked by the orchestrator"""
    profile_id: Optional[str] = None
    job_description_url: Optional[str] = None
    temporary_resume_url: Optional[str] = None
    temporary_network_profile_url: Optional[str] = None


# -------- Responses --------
class AnalyzeResponse(CamelModel):
    score: int
    breakdown: ScoreBreakdown
    gaps: List[str]
    suggestions: List[str]
    reasoning: str
    document_source: DocumentSource
    analysis_type: AnalysisType
    analysis_date: datetime
    processing_time_ms: int

    @classmethod
    def from_outcome(cls, outcome: ScoringOutcome) -> "AnalyzeResponse":
        result = outcome.result
        return cls(
            score=result.score,
            breakdown=result.breakdown,
            gaps=result.gaps,
            suggestions=result.suggestions,
            reasoning=result.reasoning,
            document_source=result.document_source,
            analysis_type=result.analysis_type,
            analysis_date=result.created_at,
            processing_time_ms=outcome.processing_time_ms,
        )


class HistoryItem(CamelModel):
    score: int
    reasoning: str = ""
    suggestions: List[str] = []
    document_source: DocumentSource
    analysis_type: AnalysisType
    analysis_date: datetime

    @classmethod
    def from_result(cls, result: ScoringResult) -> "HistoryItem":
        return cls(
            score=result.score,
            reasoning=result.reasoning,
            suggestions=result.suggestions,
            document_source=result.document_source,
            analysis_type=result.analysis_type,
            analysis_date=result.created_at,
        )


class ProfileDocumentStatus(CamelModel):
    has_resume: bool
    has_network_profile: bool
    resume_locator: Optional[str] = None
    network_profile_locator: Optional[str] = None
    can_analyze: bool
    allow_temporary_upload: bool = True
    allow_profile_update: bool


class UploadResponse(CamelModel):
    document_type: DocumentKind
    locator: str
    preview: str
