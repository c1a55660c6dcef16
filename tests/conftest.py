"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from jose import jwt

from api.auth import AuthenticatedUser
from utilities.config import config


def make_cursor(docs):
    """Mimic a motor cursor: chainable sort/skip/limit and an awaitable to_list."""
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=docs)
    return cursor


def make_collection():
    """Mock motor collection. find/aggregate are sync and return cursors, like motor."""
    collection = MagicMock()
    collection.insert_one = AsyncMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.update_one = AsyncMock(return_value=MagicMock(matched_count=1, modified_count=1))
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    collection.count_documents = AsyncMock(return_value=0)
    collection.find.return_value = make_cursor([])
    collection.aggregate.return_value = make_cursor([])
    return collection


def make_token(user_id: str, **claims) -> str:
    payload = {"sub": user_id, **claims}
    return jwt.encode(payload, config.secret_key, algorithm=config.algorithm)


@pytest.fixture
def mock_store():
    """Create a mock MongoDB manager with books, reviews and users collections."""
    store = MagicMock()
    store.books = make_collection()
    store.reviews = make_collection()
    store.users = make_collection()
    return store


@pytest.fixture
def owner_id():
    return ObjectId()


@pytest.fixture
def owner(owner_id):
    return AuthenticatedUser(user_id=str(owner_id))


@pytest.fixture
def other_user():
    return AuthenticatedUser(user_id=str(ObjectId()))


@pytest.fixture
def sample_book_doc():
    """A stored book document."""
    return {
        "_id": ObjectId(),
        "title": "Dune",
        "author": "Frank Herbert",
        "genre": "Science Fiction",
        "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }


@pytest.fixture
def sample_review_doc(sample_book_doc, owner_id):
    """A stored review of the sample book by the owner."""
    return {
        "_id": ObjectId(),
        "book": sample_book_doc["_id"],
        "user": owner_id,
        "rating": 4,
        "comment": "Sprawling and strange",
        "created_at": datetime(2024, 1, 2, tzinfo=timezone.utc),
    }


@pytest.fixture
def cursor_factory():
    """Build mock cursors inside tests."""
    return make_cursor


@pytest.fixture
def token_factory():
    """Sign bearer tokens with the configured secret."""
    return make_token
