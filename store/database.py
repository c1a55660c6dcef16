"""
MongoDB database utilities for async operations.
Handles connection, indexing and collection access for books and reviews.
"""

from typing import Any, Dict, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import ConnectionFailure
import structlog

logger = structlog.get_logger(__name__)

BOOKS_COLLECTION = "books"
REVIEWS_COLLECTION = "reviews"
USERS_COLLECTION = "users"


def to_object_id(value: Any) -> Optional[ObjectId]:
    """
    Convert a path or token identifier to an ObjectId.

    Returns None when the value is not a valid 24-char hex id.
    """
    if value is None:
        return None
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def user_reference(user_id: str) -> Union[ObjectId, str]:
    """Stored form of a user id: ObjectId when it parses as one, else the raw string."""
    object_id = to_object_id(user_id)
    return object_id if object_id is not None else user_id


class MongoDBManager:
    """
    Async MongoDB manager for the book review service.
    Owns the client lifecycle and the indexes the services rely on.
    """

    def __init__(self, connection_url: str, database_name: str):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    async def __aenter__(self) -> "MongoDBManager":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    @property
    def books(self) -> AsyncIOMotorCollection:
        return self.database[BOOKS_COLLECTION]

    @property
    def reviews(self) -> AsyncIOMotorCollection:
        return self.database[REVIEWS_COLLECTION]

    @property
    def users(self) -> AsyncIOMotorCollection:
        return self.database[USERS_COLLECTION]

    async def connect(self) -> None:
        """Establish connection to MongoDB."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url)
            self.database = self.client[self.database_name]

            # Test connection
            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB", database=self.database_name)

            await self._create_indexes()

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            self.client = None
            self.database = None
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """
        Create indexes for the common query patterns.

        The compound (book, user) index on reviews is unique: it is the only
        thing preventing two concurrent submissions from the same user for the
        same book from both being stored.
        """
        try:
            await self.reviews.create_index(
                [("book", ASCENDING), ("user", ASCENDING)],
                unique=True,
                name="book_user_unique",
            )

            # Review pages for a book are read in creation order
            await self.reviews.create_index([("book", ASCENDING), ("created_at", ASCENDING)])

            await self.books.create_index("author")
            await self.books.create_index("genre")
            await self.books.create_index("title")

            logger.info("Successfully created MongoDB indexes")

        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        if self.database is None:
            return {"status": "unhealthy", "error": "not connected"}

        try:
            await self.database.command("ping")
            return {
                "status": "healthy",
                "books_count": await self.books.estimated_document_count(),
                "reviews_count": await self.reviews.estimated_document_count(),
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
