"""
Book service: create, list, detail and search over the books collection.
"""

import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from api.auth import AuthenticatedUser
from api.errors import InvalidInput, NotFound, PersistenceError
from api.models import (
    BookCreate, BookResponse, BookListResponse, BookDetailResponse,
    PopulatedReviewResponse
)
from store.database import MongoDBManager, to_object_id

logger = structlog.get_logger(__name__)


def contains_filter(value: str) -> Dict[str, str]:
    """Case-insensitive substring match. User input is escaped so it is never read as a pattern."""
    return {"$regex": re.escape(value), "$options": "i"}


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit)


class BookService:
    """Database service for book operations."""

    def __init__(self, store: MongoDBManager):
        self.store = store

    async def create(self, payload: BookCreate, requester: AuthenticatedUser) -> BookResponse:
        """
        Persist a new book.

        Args:
            payload: Book fields
            requester: Authenticated caller

        Returns:
            The stored book with its assigned id
        """
        book_doc = {
            "title": payload.title,
            "author": payload.author,
            "genre": payload.genre,
            "created_at": datetime.now(timezone.utc),
        }
        try:
            result = await self.store.books.insert_one(book_doc)
        except PyMongoError as e:
            logger.error("Failed to add book", title=payload.title, error=str(e))
            raise PersistenceError("Error adding book")

        book_doc["_id"] = result.inserted_id
        logger.info("Book created", book_id=str(result.inserted_id), user_id=requester.user_id)
        return BookResponse.from_document(book_doc)

    async def list_books(
        self,
        page: int = 1,
        limit: int = 10,
        author: Optional[str] = None,
        genre: Optional[str] = None,
    ) -> BookListResponse:
        """
        Get books with optional author/genre filters and pagination.

        Args:
            page: 1-based page number
            limit: Books per page
            author: Substring to match against author
            genre: Substring to match against genre

        Returns:
            BookListResponse with the page and totals
        """
        filter_query: Dict[str, Any] = {}
        if author:
            filter_query["author"] = contains_filter(author)
        if genre:
            filter_query["genre"] = contains_filter(genre)

        skip = (page - 1) * limit

        try:
            cursor = self.store.books.find(filter_query).skip(skip).limit(limit)
            books_docs = await cursor.to_list(length=limit)
            total = await self.store.books.count_documents(filter_query)
        except PyMongoError as e:
            logger.error("Failed to fetch books", error=str(e), page=page, limit=limit)
            raise PersistenceError("Error fetching books")

        return BookListResponse(
            books=[BookResponse.from_document(doc) for doc in books_docs],
            total=total,
            page=page,
            pages=page_count(total, limit),
        )

    async def get_book(self, book_id: str) -> Dict[str, Any]:
        """
        Fetch a raw book document.

        Raises:
            NotFound: If the id is malformed or no book has it
        """
        object_id = to_object_id(book_id)
        if object_id is None:
            raise NotFound("Book not found")

        try:
            book_doc = await self.store.books.find_one({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to fetch book", book_id=book_id, error=str(e))
            raise PersistenceError("Error fetching book details")

        if not book_doc:
            raise NotFound("Book not found")
        return book_doc

    async def get_with_reviews(self, book_id: str, page: int = 1, limit: int = 5) -> BookDetailResponse:
        """
        Get a book with one page of its reviews.

        The review count and average rating cover every review of the book,
        not only the returned page.
        """
        book_doc = await self.get_book(book_id)
        object_id = book_doc["_id"]
        skip = (page - 1) * limit

        try:
            cursor = (
                self.store.reviews.find({"book": object_id})
                .sort([("created_at", ASCENDING), ("_id", ASCENDING)])
                .skip(skip)
                .limit(limit)
            )
            review_docs = await cursor.to_list(length=limit)
            authors = await self._load_authors(review_docs)

            stats_cursor = self.store.reviews.aggregate([
                {"$match": {"book": object_id}},
                {"$group": {"_id": None, "avgRating": {"$avg": "$rating"}, "count": {"$sum": 1}}},
            ])
            stats = await stats_cursor.to_list(length=1)
        except PyMongoError as e:
            logger.error("Failed to fetch book details", book_id=book_id, error=str(e))
            raise PersistenceError("Error fetching book details")

        total_reviews = stats[0]["count"] if stats else 0
        average_rating = (stats[0].get("avgRating") or 0) if stats else 0

        reviews = [
            PopulatedReviewResponse.from_document(doc, authors.get(doc.get("user")))
            for doc in review_docs
        ]

        return BookDetailResponse(
            book=BookResponse.from_document(book_doc),
            reviews=reviews,
            total_reviews=total_reviews,
            average_rating=average_rating,
            page=page,
            pages=page_count(total_reviews, limit),
        )

    async def _load_authors(self, review_docs: List[Dict[str, Any]]) -> Dict[Any, Dict[str, Any]]:
        """Resolve review authors to {_id, username} only."""
        user_ids = list({doc["user"] for doc in review_docs if doc.get("user") is not None})
        if not user_ids:
            return {}

        cursor = self.store.users.find({"_id": {"$in": user_ids}}, {"username": 1})
        user_docs = await cursor.to_list(length=len(user_ids))
        return {doc["_id"]: doc for doc in user_docs}

    async def search(self, q: Optional[str]) -> List[BookResponse]:
        """
        Find books whose title or author contains the query.

        Raises:
            InvalidInput: If the query is missing or blank
        """
        if not q or not q.strip():
            raise InvalidInput("Search query is required")

        filter_query = {"$or": [{"title": contains_filter(q)}, {"author": contains_filter(q)}]}

        try:
            books_docs = await self.store.books.find(filter_query).to_list(length=None)
        except PyMongoError as e:
            logger.error("Failed to search books", query=q, error=str(e))
            raise PersistenceError("Error searching books")

        return [BookResponse.from_document(doc) for doc in books_docs]
