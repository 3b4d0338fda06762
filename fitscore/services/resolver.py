"""
Candidate document resolution.

Precedence, first usable document wins:
temporary resume > temporary network profile > stored resume > stored network profile.
"""
from typing import List, Optional

from fitscore.models.models import DocumentKind, DocumentOrigin, DocumentRef, ExtractedText
from fitscore.models.schemas import AnalyzeRequest, ProfileDocumentStatus
from fitscore.utils.exceptions import ExtractionError, MissingCandidateDocument
from fitscore.utils.logging_config import get_logger

logger = get_logger(__name__)


def stored_locators(profile: Optional[dict]) -> dict:
    """Resume and network-profile locators stored on a profile document"""
    pdf = (profile or {}).get("pdf") or {}
    return {
        DocumentKind.RESUME: pdf.get("resume") or None,
        DocumentKind.NETWORK_PROFILE: pdf.get("linkedin") or None,
    }


def temporary_refs(request: AnalyzeRequest) -> List[DocumentRef]:
    refs = []
    if request.temporary_resume_url:
        refs.append(DocumentRef(
            kind=DocumentKind.RESUME, locator=request.temporary_resume_url, origin=DocumentOrigin.TEMPORARY
        ))
    if request.temporary_network_profile_url:
        refs.append(DocumentRef(
            kind=DocumentKind.NETWORK_PROFILE,
            locator=request.temporary_network_profile_url,
            origin=DocumentOrigin.TEMPORARY,
        ))
    return refs


def plan_tiers(request: AnalyzeRequest, profile: Optional[dict]) -> List[DocumentRef]:
    tiers = temporary_refs(request)
    stored = stored_locators(profile)
    for kind in (DocumentKind.RESUME, DocumentKind.NETWORK_PROFILE):
        if stored[kind]:
            tiers.append(DocumentRef(kind=kind, locator=stored[kind], origin=DocumentOrigin.PROFILE))
    return tiers


def document_status(profile: Optional[dict]) -> ProfileDocumentStatus:
    stored = stored_locators(profile)
    has_resume = stored[DocumentKind.RESUME] is not None
    has_network = stored[DocumentKind.NETWORK_PROFILE] is not None
    return ProfileDocumentStatus(
        has_resume=has_resume,
        has_network_profile=has_network,
        resume_locator=stored[DocumentKind.RESUME],
        network_profile_locator=stored[DocumentKind.NETWORK_PROFILE],
        can_analyze=has_resume or has_network,
        allow_temporary_upload=True,
        allow_profile_update=not (has_resume and has_network),
    )


class DocumentResolver:
    """Walks the candidate tiers and returns the first one that extracts"""

    def __init__(self, extractor):
        self.extractor = extractor

    async def select(self, tiers: List[DocumentRef]) -> ExtractedText:
        tried = []
        for ref in tiers:
            try:
                extracted = await self.extractor.extract(ref)
            except ExtractionError as e:
                logger.info(
                    f"Skipping {ref.kind.value} ({ref.origin.value}): {e.kind.value}",
                    extra={"locator": ref.locator}
                )
                tried.append({
                    "kind": ref.kind.value,
                    "origin": ref.origin.value,
                    "reason": e.kind.value,
                })
                continue

            logger.info(f"Selected candidate document: {ref.document_source.value}")
            return extracted

        raise MissingCandidateDocument(tried=tried)
