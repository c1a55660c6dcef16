"""
Review service: submit, update and delete reviews scoped to a book.
"""

from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from pymongo.errors import DuplicateKeyError, PyMongoError

from api.auth import AuthenticatedUser
from api.books import BookService
from api.errors import DuplicateReview, Forbidden, NotFound, PersistenceError
from api.models import MessageResponse, ReviewCreate, ReviewResponse, ReviewUpdate
from store.database import MongoDBManager, to_object_id, user_reference

logger = structlog.get_logger(__name__)


class ReviewService:
    """Database service for review operations."""

    def __init__(self, store: MongoDBManager, book_service: BookService):
        self.store = store
        self.book_service = book_service

    async def submit(self, book_id: str, payload: ReviewCreate, requester: AuthenticatedUser) -> ReviewResponse:
        """
        Store a new review of a book by the requester.

        Duplicates are detected by the unique (book, user) index on insert,
        never by reading first.

        Raises:
            NotFound: If the book does not exist
            DuplicateReview: If the requester already reviewed this book
        """
        book_doc = await self.book_service.get_book(book_id)

        review_doc = {
            "book": book_doc["_id"],
            "user": user_reference(requester.user_id),
            "rating": payload.rating,
            "comment": payload.comment,
            "created_at": datetime.now(timezone.utc),
        }

        try:
            result = await self.store.reviews.insert_one(review_doc)
        except DuplicateKeyError:
            logger.warning("Duplicate review rejected", book_id=book_id, user_id=requester.user_id)
            raise DuplicateReview("You have already reviewed this book")
        except PyMongoError as e:
            logger.error("Failed to submit review", book_id=book_id, error=str(e))
            raise PersistenceError("Error submitting review")

        review_doc["_id"] = result.inserted_id
        logger.info("Review submitted", review_id=str(result.inserted_id), book_id=book_id)
        return ReviewResponse.from_document(review_doc)

    async def _owned_review(self, review_id: str, requester: AuthenticatedUser, action: str, error_message: str) -> Dict[str, Any]:
        object_id = to_object_id(review_id)
        if object_id is None:
            raise NotFound("Review not found")

        try:
            review_doc = await self.store.reviews.find_one({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to fetch review", review_id=review_id, error=str(e))
            raise PersistenceError(error_message)

        if not review_doc:
            raise NotFound("Review not found")

        if review_doc.get("user") != user_reference(requester.user_id):
            logger.warning("Review ownership check failed", review_id=review_id, user_id=requester.user_id)
            raise Forbidden(f"Not authorized to {action} this review")

        return review_doc

    async def update(self, review_id: str, payload: ReviewUpdate, requester: AuthenticatedUser) -> ReviewResponse:
        """
        Partially update the requester's own review.

        Falsy values (0, "") count as not provided and keep the stored value.

        Raises:
            NotFound: If the review does not exist
            Forbidden: If the requester does not own the review
        """
        review_doc = await self._owned_review(review_id, requester, "update", "Error updating review")

        changes = {
            "rating": payload.rating or review_doc.get("rating"),
            "comment": payload.comment or review_doc.get("comment"),
            "updated_at": datetime.now(timezone.utc),
        }

        try:
            result = await self.store.reviews.update_one(
                {"_id": review_doc["_id"], "user": review_doc["user"]},
                {"$set": changes}
            )
        except PyMongoError as e:
            logger.error("Failed to update review", review_id=review_id, error=str(e))
            raise PersistenceError("Error updating review")

        # Removed between the ownership read and the write
        if result.matched_count == 0:
            raise NotFound("Review not found")

        review_doc.update(changes)
        logger.info("Review updated", review_id=review_id)
        return ReviewResponse.from_document(review_doc)

    async def delete(self, review_id: str, requester: AuthenticatedUser) -> MessageResponse:
        """
        Delete the requester's own review.

        Raises:
            NotFound: If the review does not exist
            Forbidden: If the requester does not own the review
        """
        review_doc = await self._owned_review(review_id, requester, "delete", "Error deleting review")

        try:
            result = await self.store.reviews.delete_one({"_id": review_doc["_id"], "user": review_doc["user"]})
        except PyMongoError as e:
            logger.error("Failed to delete review", review_id=review_id, error=str(e))
            raise PersistenceError("Error deleting review")

        if result.deleted_count == 0:
            raise NotFound("Review not found")

        logger.info("Review deleted", review_id=review_id)
        return MessageResponse(message="Review deleted")
