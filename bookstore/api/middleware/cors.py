"""
CORS Configuration

Browser access to the bookstore API. Development admits the local admin
front end; every other environment admits only the origins listed in
``CORS_ALLOWED_ORIGINS``.
"""

import os
from typing import List, Optional
from dataclasses import dataclass, field

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


DEV_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]


@dataclass
class CORSConfig:
    """CORS settings for the bookstore routes."""

    allowed_origins: List[str] = field(default_factory=list)

    # Bearer tokens travel in the Authorization header, not cookies
    allow_credentials: bool = False

    allowed_methods: List[str] = field(default_factory=lambda: ["GET", "POST", "PATCH", "DELETE", "OPTIONS"])

    allowed_headers: List[str] = field(default_factory=lambda: ["Authorization", "Content-Type", "X-Request-ID"])

    expose_headers: List[str] = field(default_factory=lambda: ["X-Request-ID"])

    max_age: int = 600


def parse_origins(raw: str) -> List[str]:
    return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]


def get_cors_config(environment: Optional[str] = None, extra_origins: Optional[str] = None) -> CORSConfig:
    """
    Build the CORS settings for an environment.

    Args:
        environment: ``development`` adds the local front end origins.
            Defaults to ``BOOKSTORE_ENV``.
        extra_origins: Comma separated origins. Defaults to ``CORS_ALLOWED_ORIGINS``.
    """
    if environment is None:
        environment = os.getenv("BOOKSTORE_ENV", "development")
    if extra_origins is None:
        extra_origins = os.getenv("CORS_ALLOWED_ORIGINS", "")

    origins = list(DEV_ORIGINS) if environment == "development" else []
    for origin in parse_origins(extra_origins):
        if origin not in origins:
            origins.append(origin)
    return CORSConfig(allowed_origins=origins)


def setup_cors(app: FastAPI, config: Optional[CORSConfig] = None) -> None:
    """Install CORSMiddleware; loads settings from the environment when config is None."""
    config = config or get_cors_config()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=config.allow_credentials,
        allow_methods=config.allowed_methods,
        allow_headers=config.allowed_headers,
        expose_headers=config.expose_headers,
        max_age=config.max_age,
    )
