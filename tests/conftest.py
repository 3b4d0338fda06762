import json
import os

os.environ.setdefault("ENVIRONMENT", "testing")

import pytest

from fitscore.models.settings import ExtractionSettings, ScoringSettings
from fitscore.services.analysis_client import AnalysisClient
from fitscore.services.extractor import TextExtractor
from fitscore.services.orchestrator import ScoringOrchestrator
from fitscore.services.resolver import DocumentResolver
from fitscore.utils.logging_config import configure_for_environment

configure_for_environment()


JD_TEXT = (
    "Senior Python Developer. Required skills: Python, FastAPI, MongoDB. "
    "5+ years of backend experience. BSc in Computer Science."
)
RESUME_TEXT = "Jane Doe. Backend engineer with 6 years of Python, FastAPI and MongoDB experience."
NETWORK_TEXT = "Jane Doe | Software Engineer | Python | Cloud | Open source contributor"

SCORING_JSON = json.dumps({
    "score": 82,
    "reasoning": "Strong backend match with minor cloud gaps.",
    "breakdown": {
        "technical_skills": 26,
        "experience": 22,
        "education": 12,
        "domain_fit": 11,
        "soft_skills": 7,
        "growth_potential": 4,
    },
    "gaps": ["Kubernetes"],
    "suggestions": [
        "Add Kubernetes projects",
        "Quantify API performance work",
        "Mention MongoDB schema design",
        "Highlight mentoring",
        "List cloud certifications",
    ],
})


class FakeDocumentStore:
    """In-memory document store; ``failures`` makes a locator fail transiently N times"""

    def __init__(self, docs=None):
        self.docs = dict(docs or {})
        self.failures = {}
        self.fetched = []
        self.deleted = []
        self._counter = 0

    def upload(self, filename, data):
        self._counter += 1
        locator = f"mem://uploads/{self._counter}_{filename}"
        self.docs[locator] = data
        return locator

    def fetch(self, locator):
        self.fetched.append(locator)
        if self.failures.get(locator, 0) > 0:
            self.failures[locator] -= 1
            raise OSError("connection reset by peer")
        if locator not in self.docs:
            raise FileNotFoundError(locator)
        return self.docs[locator]

    def delete(self, locator):
        self.deleted.append(locator)
        return self.docs.pop(locator, None) is not None


class FakeGenerationService:
    """Returns queued responses in call order and records the prompts it saw"""

    def __init__(self, responses=None, error=None, fail_on=None):
        self.responses = list(responses or ["JD summary", "Candidate summary", SCORING_JSON])
        self.error = error
        self.fail_on = fail_on
        self.calls = []

    def generate(self, prompt, stage_settings):
        self.calls.append((prompt, stage_settings))
        if self.error is not None and len(self.calls) == self.fail_on:
            raise self.error
        return self.responses[(len(self.calls) - 1) % len(self.responses)]


class FakeProfileStore:
    def __init__(self, profiles=None):
        self.profiles = dict(profiles or {})

    async def get(self, profile_id):
        return self.profiles.get(profile_id)


class FakeResultStore:
    def __init__(self):
        self.inserted = []

    async def insert(self, result):
        self.inserted.append(result)
        return str(len(self.inserted))

    async def find_by_profile(self, profile_id, limit=10):
        found = [r for r in self.inserted if r.profile_id == profile_id]
        found.sort(key=lambda r: r.created_at, reverse=True)
        return found[:limit]


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def settings():
    return ScoringSettings(extraction=ExtractionSettings(max_attempts=3, base_delay=1.0, min_chars=10))


@pytest.fixture
def store():
    return FakeDocumentStore({
        "mem://jd.txt": JD_TEXT.encode(),
        "mem://tmp/resume.txt": RESUME_TEXT.encode(),
        "mem://tmp/network.txt": NETWORK_TEXT.encode(),
        "mem://profile/resume.txt": RESUME_TEXT.encode(),
        "mem://profile/network.txt": NETWORK_TEXT.encode(),
    })


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def extractor(store, settings, sleep_recorder):
    return TextExtractor(store, settings.extraction, sleep=sleep_recorder)


@pytest.fixture
def generation_service():
    return FakeGenerationService()


@pytest.fixture
def profiles():
    return FakeProfileStore({
        "user-1": {"_id": "user-1", "pdf": {"resume": "mem://profile/resume.txt",
                                            "linkedin": "mem://profile/network.txt"}},
        "user-network": {"_id": "user-network", "pdf": {"linkedin": "mem://profile/network.txt"}},
        "user-empty": {"_id": "user-empty", "pdf": {}},
    })


@pytest.fixture
def results():
    return FakeResultStore()


@pytest.fixture
def orchestrator(profiles, results, extractor, generation_service, settings):
    return ScoringOrchestrator(
        profiles=profiles,
        results=results,
        extractor=extractor,
        resolver=DocumentResolver(extractor),
        analysis_client=AnalysisClient(generation_service, timeout=5),
        cleanup_queue=None,
        settings=settings,
    )
