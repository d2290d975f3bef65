"""
Bookstore HTTP API.

FastAPI application with authentication, genre, book and transaction routes.
"""
