"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

# Model id and vector size used when the backend is chosen without them.
EMBEDDING_DEFAULTS: dict[str, tuple[str, int]] = {
    "hash": ("text-embedding-hash-v1", 1536),
    "huggingface": ("sentence-transformers/all-MiniLM-L6-v2", 384),
}


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # URL extraction
    url_fetch_timeout: float = Field(default=30.0, description="Per-request timeout in seconds")
    url_max_chars: int = Field(default=150_000, description="Character budget for extracted page text")
    user_agent: str = "InvestorIngest/1.0 (Investor Profile Bot)"

    # PDF extraction
    pdf_storage_dir: str = Field(
        default="./storage",
        description="Root directory that PDF storage keys are resolved against",
    )

    # Extraction fan-out
    extraction_concurrency: int = Field(default=4, ge=1, description="Max documents fetched in parallel")

    # Chunking
    max_chunk_size: int = 1500
    chunk_overlap: int = 200

    # Embedding
    embedding_backend: str = Field(
        default="hash",
        description=(
            "'hash' for the deterministic placeholder vectors, "
            "'huggingface' for a sentence-transformer model"
        ),
    )
    embedding_model: str = Field(default="", description="Model id; empty picks the backend default")
    embedding_dim: int = Field(
        default=0,
        ge=0,
        description="Vector size, also used for Chroma placeholder vectors; 0 picks the backend default",
    )
    embedding_batch_size: int = 100

    # Chunk store (Chroma)
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "investor_sections"

    # Worker
    worker_count: int = 1
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _fill_embedding_defaults(self) -> "Settings":
        if self.embedding_backend not in EMBEDDING_DEFAULTS:
            raise ValueError(
                f"Unsupported embedding_backend={self.embedding_backend!r}. "
                f"Choose from: {', '.join(EMBEDDING_DEFAULTS)}."
            )
        model, dim = EMBEDDING_DEFAULTS[self.embedding_backend]
        self.embedding_model = self.embedding_model or model
        self.embedding_dim = self.embedding_dim or dim
        return self


# Singleton, import `settings` wherever needed.
settings = Settings()
