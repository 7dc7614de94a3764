"""Application configuration."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings are loaded in this priority order (highest to lowest):
    1. Environment variables
    2. .env file (for local development)
    3. Default values

    For local development, copy .env.example to .env and fill in your values.
    For production, set environment variables directly.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application
    # =========================================================================
    app_name: str = "Bill Clauses API"
    debug: bool = False

    # =========================================================================
    # Database
    # =========================================================================
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/bill_clauses",
        description="PostgreSQL connection URL",
    )

    # =========================================================================
    # CORS
    # =========================================================================
    cors_origins: list[str] = ["http://localhost:3000"]

    # =========================================================================
    # API Settings
    # =========================================================================
    api_v1_prefix: str = "/api/v1"

    # =========================================================================
    # Bill Documents
    # =========================================================================
    # Bills store a logical path (e.g. "bills/finance-bill-2024.pdf") that is
    # resolved against this directory when the text is extracted.
    pdf_storage_root: str = Field(
        default="storage/app/public",
        description="Directory that bill pdf_path values are relative to",
    )

    # =========================================================================
    # Clause Parsing
    # =========================================================================
    # Off by default: automatic parses produce flat section-level clauses and
    # nesting is left to manual curation.
    clause_hierarchical_parse: bool = Field(
        default=False,
        description="Detect subsections/paragraphs inside each parsed section",
    )
    # One of the OrphanPolicy values (app.models.enums)
    clause_orphan_policy: Literal[
        "block", "cascade_delete", "reparent_to_grandparent"
    ] = Field(
        default="block",
        description="What deleting a clause does to its children",
    )


settings = Settings()
