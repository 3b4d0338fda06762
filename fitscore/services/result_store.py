"""
MongoDB-backed stores for scoring results and user profiles
"""
from typing import List, Optional

from bson import ObjectId
from pymongo import DESCENDING

from fitscore.models.schemas import ScoringResult
from fitscore.utils.exceptions import ExceptionContext
from fitscore.utils.logging_config import get_logger

logger = get_logger(__name__)


class ResultStore:
    """Append-only store of scoring results"""

    def __init__(self, collection):
        self.collection = collection

    async def insert(self, result: ScoringResult) -> str:
        with ExceptionContext("insert scoring result", logger,
                              collection="score_analyses", profile_id=result.profile_id):
            doc = result.model_dump()
            res = await self.collection.insert_one(doc)
        return str(res.inserted_id)

    async def find_by_profile(self, profile_id: str, limit: int = 10) -> List[ScoringResult]:
        with ExceptionContext("query scoring history", logger,
                              collection="score_analyses", profile_id=profile_id):
            cursor = self.collection.find({"profile_id": profile_id}).sort("created_at", DESCENDING).limit(limit)
            docs = await cursor.to_list(length=limit)
            return [ScoringResult(**{k: v for k, v in d.items() if k != "_id"}) for d in docs]


class ProfileStore:
    """Read-only lookup of user profiles"""

    def __init__(self, collection):
        self.collection = collection

    async def get(self, profile_id: str) -> Optional[dict]:
        query = {"_id": ObjectId(profile_id)} if ObjectId.is_valid(profile_id) else {"_id": profile_id}
        with ExceptionContext("fetch profile", logger, collection="profiles", profile_id=profile_id):
            return await self.collection.find_one(query)
