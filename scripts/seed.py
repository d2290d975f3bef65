#!/usr/bin/env python3
"""
Bookstore - Demo Data Seeder

Creates tables and inserts a demo user, genres and books through the
catalog services. Safe to run repeatedly: existing rows are skipped and
soft-deleted ones are restored.
"""

import asyncio
import sys
from datetime import datetime

from dotenv import load_dotenv
from loguru import logger
from sqlalchemy import select

from bookstore.api.dependencies import Settings
from bookstore.catalog import BookService, GenreService
from bookstore.exceptions import ConflictError
from bookstore.security import get_password_hash
from bookstore.storage import Database, Genre, User
from bookstore.storage.models import new_id


DEMO_USER = {"username": "demo", "email": "demo@example.com", "password": "demo1234"}

GENRES = ["Fiction", "Science Fiction", "History", "Poetry"]

BOOKS = [
    {
        "title": "Dune",
        "writer": "Frank Herbert",
        "publisher": "Chilton Books",
        "publication_year": 1965,
        "price": 12.5,
        "stock_quantity": 10,
        "genre": "Science Fiction",
    },
    {
        "title": "Pride and Prejudice",
        "writer": "Jane Austen",
        "publisher": "T. Egerton",
        "publication_year": 1813,
        "price": 8.0,
        "stock_quantity": 4,
        "genre": "Fiction",
    },
    {
        "title": "The Histories",
        "writer": "Herodotus",
        "publisher": "Penguin Classics",
        "publication_year": 2003,
        "price": 15.0,
        "stock_quantity": 2,
        "genre": "History",
    },
    {
        "title": "Leaves of Grass",
        "writer": "Walt Whitman",
        "publisher": "Self-published",
        "publication_year": 1855,
        "price": 6.75,
        "stock_quantity": 7,
        "genre": "Poetry",
    },
]


async def seed_user(database: Database) -> None:
    async with database.session() as session:
        existing = (
            await session.execute(select(User).where(User.email == DEMO_USER["email"]))
        ).scalar_one_or_none()
        if existing:
            logger.info(f"User {DEMO_USER['email']} already exists")
            return

        now = datetime.utcnow()
        session.add(User(
            id=new_id(),
            username=DEMO_USER["username"],
            email=DEMO_USER["email"],
            hashed_password=get_password_hash(DEMO_USER["password"]),
            created_at=now,
            updated_at=now,
        ))
        logger.info(f"Created user {DEMO_USER['email']} (password: {DEMO_USER['password']})")


async def seed_genres(database: Database) -> dict[str, str]:
    """Create genres; returns name -> id."""
    ids = {}
    for name in GENRES:
        async with database.session() as session:
            service = GenreService(session)
            try:
                genre, restored = await service.create(name)
                logger.info(f"{'Restored' if restored else 'Created'} genre {name}")
            except ConflictError:
                genre = (
                    await session.execute(select(Genre).where(Genre.name == name))
                ).scalar_one()
                logger.info(f"Genre {name} already exists")
            ids[name] = genre.id
    return ids


async def seed_books(database: Database, genre_ids: dict[str, str]) -> None:
    for entry in BOOKS:
        fields = {k: v for k, v in entry.items() if k != "genre"}
        fields["genre_id"] = genre_ids[entry["genre"]]

        async with database.session() as session:
            try:
                _, restored = await BookService(session).create(fields)
                logger.info(f"{'Restored' if restored else 'Created'} book {entry['title']}")
            except ConflictError:
                logger.info(f"Book {entry['title']} already exists")


async def seed(settings: Settings) -> None:
    database = Database(settings.database_url, echo=settings.database_echo)
    try:
        await database.create_tables()
        await seed_user(database)
        genre_ids = await seed_genres(database)
        await seed_books(database, genre_ids)
    finally:
        await database.dispose()


def main():
    load_dotenv()
    settings = Settings.from_env()
    logger.info(f"Seeding {settings.database_url}")
    asyncio.run(seed(settings))
    logger.info("Seed complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
