"""
Scoring pipeline: resolve documents, run the three analysis stages, persist.
"""
from enum import Enum
from typing import Any, List, Optional, TypedDict

from langgraph.graph import END, StateGraph

from fitscore.helpers.prompts import (
    build_jd_summary_prompt,
    build_profile_summary_prompt,
    build_scoring_prompt,
)
from fitscore.helpers.response_parser import parse_scoring_response
from fitscore.models.models import (
    DocumentKind,
    DocumentOrigin,
    DocumentRef,
    ParsedScore,
    Stage,
)
from fitscore.models.schemas import AnalyzeRequest, ScoringOutcome, ScoringResult
from fitscore.models.settings import ScoringSettings
from fitscore.services.resolver import plan_tiers, temporary_refs
from fitscore.utils.exceptions import ResourceNotFound, ScoringBaseException, ValidationError
from fitscore.utils.logging_config import PerformanceMonitor, get_logger

logger = get_logger(__name__)


class RunState(str, Enum):
    RESOLVING = "resolving"
    EXTRACTING_JD = "extracting_jd"
    EXTRACTING_CANDIDATE = "extracting_candidate"
    SUMMARIZING_JD = "summarizing_jd"
    SUMMARIZING_CANDIDATE = "summarizing_candidate"
    SCORING = "scoring"
    PARSING = "parsing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


_ORDER = [s for s in RunState if s != RunState.FAILED]


class ScoringRun:
    """Per-run state machine; transitions only move forward"""

    def __init__(self, profile_id: Optional[str]):
        self.profile_id = profile_id
        self.state = RunState.RESOLVING
        self.history: List[RunState] = [RunState.RESOLVING]
        self.failure_reason: Optional[str] = None

    def advance(self, to: RunState):
        if self.state in (RunState.DONE, RunState.FAILED):
            raise RuntimeError(f"Run already finished in state {self.state.value}")
        if to != RunState.FAILED and _ORDER.index(to) <= _ORDER.index(self.state):
            raise RuntimeError(f"Illegal transition {self.state.value} -> {to.value}")
        logger.debug(f"Run {self.profile_id}: {self.state.value} -> {to.value}")
        self.state = to
        self.history.append(to)

    def fail(self, reason: str):
        self.failure_reason = reason
        self.advance(RunState.FAILED)


class AnalysisState(TypedDict, total=False):
    run: Any
    jd_text: str
    candidate_text: str
    candidate_kind: DocumentKind
    jd_summary: str
    profile_summary: str
    scoring_raw: str
    parsed: ParsedScore


class ScoringOrchestrator:
    """
    Sequences one scoring run.

    Collaborators are injected so tests can replace any of them; nothing is
    persisted unless every stage succeeds.
    """

    def __init__(self, profiles, results, extractor, resolver, analysis_client,
                 cleanup_queue=None, settings: ScoringSettings = None):
        self.profiles = profiles
        self.results = results
        self.extractor = extractor
        self.resolver = resolver
        self.analysis_client = analysis_client
        self.cleanup_queue = cleanup_queue
        self.settings = settings or ScoringSettings()
        self.graph = self._build_graph()

    # -------- analysis chain --------
    async def _node_summarize_jd(self, state: AnalysisState):
        state["run"].advance(RunState.SUMMARIZING_JD)
        prompt = build_jd_summary_prompt(state["jd_text"], self.settings.prompt_max_chars)
        out = await self.analysis_client.invoke(Stage.JD_SUMMARY, prompt, self.settings.generation.jd_summary)
        return {"jd_summary": out.raw_text}

    async def _node_summarize_candidate(self, state: AnalysisState):
        state["run"].advance(RunState.SUMMARIZING_CANDIDATE)
        prompt = build_profile_summary_prompt(
            state["candidate_text"], state["candidate_kind"], self.settings.prompt_max_chars
        )
        out = await self.analysis_client.invoke(
            Stage.PROFILE_SUMMARY, prompt, self.settings.generation.profile_summary
        )
        return {"profile_summary": out.raw_text}

    async def _node_score(self, state: AnalysisState):
        state["run"].advance(RunState.SCORING)
        prompt = build_scoring_prompt(state["jd_summary"], state["profile_summary"], self.settings.prompt_max_chars)
        out = await self.analysis_client.invoke(Stage.SCORING, prompt, self.settings.generation.scoring)
        return {"scoring_raw": out.raw_text}

    def _node_parse(self, state: AnalysisState):
        state["run"].advance(RunState.PARSING)
        return {"parsed": parse_scoring_response(state["scoring_raw"])}

    def _build_graph(self):
        g = StateGraph(AnalysisState)
        g.add_node("summarize_jd", self._node_summarize_jd)
        g.add_node("summarize_candidate", self._node_summarize_candidate)
        g.add_node("score", self._node_score)
        g.add_node("parse", self._node_parse)
        g.set_entry_point("summarize_jd")
        g.add_edge("summarize_jd", "summarize_candidate")
        g.add_edge("summarize_candidate", "score")
        g.add_edge("score", "parse")
        g.add_edge("parse", END)
        return g.compile()

    # -------- run --------
    async def _resolve(self, request: AnalyzeRequest):
        if not request.profile_id:
            raise ValidationError("Profile ID is required", field="profileId")
        if not request.job_description_url:
            raise ValidationError("Job description is required", field="jobDescriptionUrl")

        profile = await self.profiles.get(request.profile_id)
        if not profile:
            raise ResourceNotFound("Profile not found", resource="profile", resource_id=request.profile_id)
        return plan_tiers(request, profile)

    async def run(self, request: AnalyzeRequest) -> ScoringOutcome:
        run = ScoringRun(request.profile_id)
        logger.info(f"Starting score analysis for profile {request.profile_id}")

        try:
            with PerformanceMonitor("score analysis", logger, threshold_ms=60000) as perf:
                tiers = await self._resolve(request)

                run.advance(RunState.EXTRACTING_JD)
                jd_ref = DocumentRef(
                    kind=DocumentKind.JOB_DESCRIPTION,
                    locator=request.job_description_url,
                    origin=DocumentOrigin.TEMPORARY,
                )
                jd = await self.extractor.extract(jd_ref)

                run.advance(RunState.EXTRACTING_CANDIDATE)
                candidate = await self.resolver.select(tiers)

                final = await self.graph.ainvoke({
                    "run": run,
                    "jd_text": jd.text,
                    "candidate_text": candidate.text,
                    "candidate_kind": candidate.source.kind,
                })
                parsed: ParsedScore = final["parsed"]

                run.advance(RunState.PERSISTING)
                result = ScoringResult(
                    profile_id=request.profile_id,
                    score=parsed.score,
                    breakdown=parsed.breakdown,
                    gaps=parsed.gaps,
                    suggestions=parsed.suggestions,
                    reasoning=parsed.reasoning,
                    document_source=candidate.source.document_source,
                    analysis_type=candidate.source.analysis_type,
                    parse_outcome=parsed.outcome,
                    job_summary=final.get("jd_summary", ""),
                    candidate_summary=final.get("profile_summary", ""),
                    job_description_locator=request.job_description_url,
                )
                await self.results.insert(result)
                run.advance(RunState.DONE)
        except ScoringBaseException as e:
            run.fail(e.error_code)
            logger.warning(f"Score analysis failed for profile {request.profile_id} in "
                           f"{run.history[-2].value}: {e.message}")
            raise
        except Exception as e:
            run.fail(e.__class__.__name__)
            logger.error(f"Unexpected error during score analysis for profile {request.profile_id}: {e}",
                         exc_info=True)
            raise

        if self.cleanup_queue is not None:
            self.cleanup_queue.submit([ref.locator for ref in temporary_refs(request)])

        processing_time_ms = int(round(perf.elapsed_ms))
        logger.info(
            f"Score analysis completed for profile {request.profile_id}: score {result.score} "
            f"({result.document_source}, {result.parse_outcome}) in {processing_time_ms}ms"
        )
        return ScoringOutcome(result=result, processing_time_ms=processing_time_ms)
