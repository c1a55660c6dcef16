"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Ratings are stored as given; no range check is applied
Rating = Union[int, float]


def _id_str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


class BookCreate(BaseModel):
    """Request body for creating a book."""
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    genre: Optional[str] = Field(None, description="Book genre")


class BookResponse(BaseModel):
    """Book response model for API."""
    id: str = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    genre: Optional[str] = Field(None, description="Book genre")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "BookResponse":
        return cls(
            id=str(doc["_id"]),
            title=doc.get("title", ""),
            author=doc.get("author", ""),
            genre=doc.get("genre"),
            created_at=doc.get("created_at"),
        )


class BookListResponse(BaseModel):
    """Response model for book list with pagination."""
    books: List[BookResponse] = Field(..., description="Page of books")
    total: int = Field(..., description="Total number of matching books")
    page: int = Field(..., description="Current page number")
    pages: int = Field(..., description="Total number of pages")


class ReviewAuthor(BaseModel):
    """Public projection of the user who wrote a review."""
    id: str = Field(..., description="User identifier")
    username: Optional[str] = Field(None, description="Display name")


class ReviewCreate(BaseModel):
    """Request body for submitting a review."""
    rating: Rating = Field(..., description="Rating, expected 1-5")
    comment: Optional[str] = Field(None, description="Review text")


class ReviewUpdate(BaseModel):
    """
    Request body for updating a review.

    A falsy value (0, empty string) is treated the same as an omitted one and
    leaves the stored value unchanged.
    """
    rating: Optional[Rating] = Field(None, description="New rating")
    comment: Optional[str] = Field(None, description="New review text")


class ReviewResponse(BaseModel):
    """Review response model for API."""
    id: str = Field(..., description="Unique review identifier")
    book: str = Field(..., description="Reviewed book identifier")
    user: str = Field(..., description="Author user identifier")
    rating: Optional[Rating] = Field(None, description="Rating")
    comment: Optional[str] = Field(None, description="Review text")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ReviewResponse":
        return cls(
            id=str(doc["_id"]),
            book=_id_str(doc.get("book")),
            user=_id_str(doc.get("user")),
            rating=doc.get("rating"),
            comment=doc.get("comment"),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )


class PopulatedReviewResponse(ReviewResponse):
    """Review with its author resolved to a public projection."""
    user: Optional[ReviewAuthor] = Field(None, description="Review author")

    @classmethod
    def from_document(
        cls, doc: Dict[str, Any], author: Optional[Dict[str, Any]] = None
    ) -> "PopulatedReviewResponse":
        return cls(
            id=str(doc["_id"]),
            book=_id_str(doc.get("book")),
            user=ReviewAuthor(id=str(author["_id"]), username=author.get("username")) if author else None,
            rating=doc.get("rating"),
            comment=doc.get("comment"),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )


class BookDetailResponse(BaseModel):
    """A book with one page of its reviews and aggregate rating data."""
    model_config = ConfigDict(populate_by_name=True)

    book: BookResponse = Field(..., description="The book")
    reviews: List[PopulatedReviewResponse] = Field(..., description="Page of reviews")
    total_reviews: int = Field(..., alias="totalReviews", description="Number of reviews for the book")
    average_rating: float = Field(..., alias="averageRating", description="Mean rating, 0 when unreviewed")
    page: int = Field(..., description="Current review page")
    pages: int = Field(..., description="Total number of review pages")


class MessageResponse(BaseModel):
    message: str = Field(..., description="Outcome message")


class ErrorResponse(BaseModel):
    """Error response model."""
    message: str = Field(..., description="Error message")
    detail: Optional[Any] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
