"""
FastAPI main application for the Book Review API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.auth import AuthenticatedUser, get_current_user
from api.books import BookService
from api.errors import CatalogError, PersistenceError
from api.models import (
    BookCreate, BookResponse, BookListResponse, BookDetailResponse,
    ReviewCreate, ReviewUpdate, ReviewResponse,
    MessageResponse, ErrorResponse, HealthResponse
)
from api.reviews import ReviewService
from store.database import MongoDBManager
from utilities.config import config
from utilities.logger import setup_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger.info("Starting Book Review API")

    # Connection is released on shutdown even if startup work after it fails
    async with MongoDBManager(config.mongodb_url, config.mongodb_database) as store:
        book_service = BookService(store)
        app.state.store = store
        app.state.book_service = book_service
        app.state.review_service = ReviewService(store, book_service)
        logger.info("Database connection established")

        yield

        logger.info("Shutting down Book Review API")


app = FastAPI(
    title=config.api_title,
    description="""
    A small REST API for a book catalog with per-user reviews.

    ## Features

    * **Books**: Create, browse, filter and search books
    * **Reviews**: One review per user per book, editable and removable by its author
    * **Ratings**: Average rating and review count per book

    ## Authentication

    Write endpoints require a bearer token in the Authorization header:

    ```
    Authorization: Bearer your_token_here
    ```
    """,
    version=config.api_version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Service dependencies
def get_book_service(request: Request) -> BookService:
    service = getattr(request.app.state, "book_service", None)
    if service is None:
        raise PersistenceError("Database service not available")
    return service


def get_review_service(request: Request) -> ReviewService:
    service = getattr(request.app.state, "review_service", None)
    if service is None:
        raise PersistenceError("Database service not available")
    return service


# Exception handlers
@app.exception_handler(CatalogError)
async def catalog_exception_handler(request: Request, exc: CatalogError):
    """Render service errors with their status code."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(message=exc.message, status_code=exc.status_code).model_dump(),
        headers=exc.headers
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed query or body fields are client errors."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            message="Invalid request",
            detail=jsonable_encoder(exc.errors()),
            status_code=status.HTTP_400_BAD_REQUEST
        ).model_dump()
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            message="Something went wrong!",
            detail=str(exc) if config.debug else None,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        ).model_dump()
    )


# Health check endpoint (no authentication required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    db_status = "unavailable"
    store = getattr(request.app.state, "store", None)
    if store is not None:
        health_info = await store.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=config.api_version,
        database_status=db_status
    )


# Books endpoints
@app.post("/api/books", response_model=BookResponse, status_code=status.HTTP_201_CREATED, tags=["Books"])
async def create_book(
    payload: BookCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    books: BookService = Depends(get_book_service)
):
    """Add a book to the catalog."""
    return await books.create(payload, user)


@app.get("/api/books", response_model=BookListResponse, tags=["Books"])
async def list_books(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    author: Optional[str] = None,
    genre: Optional[str] = None,
    books: BookService = Depends(get_book_service)
):
    """
    List books with filtering and pagination.

    - **author**: Case-insensitive substring of the author
    - **genre**: Case-insensitive substring of the genre
    - **page**: Page number (starts from 1)
    - **limit**: Books per page
    """
    return await books.list_books(page=page, limit=limit, author=author, genre=genre)


# Registered before /api/books/{book_id} so "search" is never taken as an id
@app.get("/api/books/search", response_model=List[BookResponse], tags=["Books"])
async def search_books(
    q: Optional[str] = None,
    books: BookService = Depends(get_book_service)
):
    """Find books whose title or author contains **q**."""
    return await books.search(q)


@app.get("/api/books/{book_id}", response_model=BookDetailResponse, tags=["Books"])
async def get_book(
    book_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(5, ge=1),
    books: BookService = Depends(get_book_service)
):
    """Get a book with a page of its reviews, review count and average rating."""
    return await books.get_with_reviews(book_id, page=page, limit=limit)


# Reviews endpoints
@app.post(
    "/api/reviews/{book_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Reviews"]
)
async def submit_review(
    book_id: str,
    payload: ReviewCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service)
):
    """Review a book. Each user may review a book once."""
    return await reviews.submit(book_id, payload, user)


@app.put("/api/reviews/{review_id}", response_model=ReviewResponse, tags=["Reviews"])
async def update_review(
    review_id: str,
    payload: ReviewUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service)
):
    """Update your own review."""
    return await reviews.update(review_id, payload, user)


@app.delete("/api/reviews/{review_id}", response_model=MessageResponse, tags=["Reviews"])
async def delete_review(
    review_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service)
):
    """Delete your own review."""
    return await reviews.delete(review_id, user)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="info"
    )
