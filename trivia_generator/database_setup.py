# trivia_generator/database_setup.py
# Purpose: MongoDB connection and question collection setup

from pymongo import MongoClient, ASCENDING
import logging

from trivia_generator.config import APP_CONFIG


logger = logging.getLogger(__name__)


# =======================
# Database Functions
# =======================

def get_client(uri=None, timeout_ms=None):
    """Initialize and return a new MongoDB client."""
    db_config = APP_CONFIG.database
    mongo_uri = uri or db_config.uri
    try:
        if not mongo_uri:
            raise ValueError("MONGO_URI environment variable not set")
        client = MongoClient(
            mongo_uri,
            serverSelectionTimeoutMS=timeout_ms or db_config.server_selection_timeout_ms,
            connectTimeoutMS=db_config.connection_timeout_ms,
        )
        # Test connection
        client.admin.command('ping')
        logger.info("Successfully connected to MongoDB.")
        return client
    except Exception as e:
        logger.error(f"Failed to connect to MongoDB: {e}")
        raise e


def get_db(client, db_name=None):
    """Return the database instance."""
    return client[db_name or APP_CONFIG.database.db_name]


def initialize_questions_collection(db, collection_name=None):
    """Create the questions collection and its query indexes."""
    name = collection_name or APP_CONFIG.database.questions_collection
    if name not in db.list_collection_names():
        db.create_collection(name)
        logger.info(f"Created collection: {name}")

    questions = db[name]

    questions.create_index(
        [("category", ASCENDING), ("difficulty", ASCENDING)],
        name="category_difficulty_idx"
    )
    logger.info(f"Created compound index on 'category' and 'difficulty' in '{name}' collection.")

    questions.create_index([("validation_status", ASCENDING)], name="validation_status_idx")
    logger.info(f"Created index on 'validation_status' in '{name}' collection.")

    questions.create_index([("ai_generated", ASCENDING)], name="ai_generated_idx")
    logger.info(f"Created index on 'ai_generated' in '{name}' collection.")

    return questions
