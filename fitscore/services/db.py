import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING

from fitscore.utils.logging_config import get_logger

logger = get_logger(__name__)

PROFILES = "profiles"
SCORE_ANALYSES = "score_analyses"


def create_client(mongo_details: str) -> motor.motor_asyncio.AsyncIOMotorClient:
    """Create the MongoDB client; motor connects lazily on first use."""
    try:
        client = motor.motor_asyncio.AsyncIOMotorClient(mongo_details)
        logger.info("MongoDB client initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize MongoDB client: {e}")
        raise
    return client


def get_database(client, db_name: str):
    logger.info(f"Using MongoDB database: {db_name}")
    return client[db_name]


async def init_indexes(db):
    """Index initialization for collections."""
    logger.info("Starting database index initialization")

    try:
        await db[SCORE_ANALYSES].create_index([("profile_id", ASCENDING), ("created_at", DESCENDING)])
        logger.debug("Created index on score_analyses.(profile_id, created_at)")
    except Exception as e:
        if "already exists" in str(e).lower():
            logger.debug("Index on score_analyses.(profile_id, created_at) already exists")
        else:
            logger.warning(f"Could not create index on score_analyses.(profile_id, created_at): {e}")
            return False

    logger.info("Database index initialization completed")
    return True
