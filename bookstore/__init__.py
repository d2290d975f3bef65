"""
Bookstore API

Inventory and order management backend:
- Users and token authentication
- Genres and books with soft delete / restore
- Orders (transactions) with computed statistics
"""

__version__ = "1.0.0"
