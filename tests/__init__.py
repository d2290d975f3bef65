"""
Bookstore API Test Suite

Tests are organized into:
- unit/: Aggregator, lifecycle manager, referential guard, store handle, middleware and security helpers
- integration/: HTTP API against an in-memory store
"""
