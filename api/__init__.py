"""
FastAPI RESTful API for the Book Review service.

This module provides a REST API for:
- Book catalog creation, browsing and search
- Per-user book reviews with rating aggregation
- Bearer token authentication on write endpoints
"""
