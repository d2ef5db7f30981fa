"""pydantic-settings based application settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Second Brain application settings.

    All values are loaded from environment variables.
    A .env file in the working directory is also supported.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Database ---
    DATABASE_URL: str = "postgresql+asyncpg://secondbrain:secondbrain@db:5432/secondbrain"

    # --- JWT ---
    JWT_SECRET: str = "change-this-secret-key"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # --- HTTP ---
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]
    LOG_LEVEL: str = "INFO"

    # --- AI Providers (optional) ---
    OPENAI_API_KEY: str = ""
    GOOGLE_API_KEY: str = ""

    # --- Embeddings ---
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_DIMENSION: int = 768
    EMBEDDING_SERVICE_URL: str = ""  # Local embedding service; overrides OpenAI when set
    EMBEDDING_MAX_INPUT_BYTES: int = 8000
    EMBEDDING_TIMEOUT_SECONDS: float = 30.0
    EMBEDDING_MAX_RETRIES: int = 3

    # --- Answer synthesis ---
    AI_ANSWER_MODEL: str | None = None  # None = first model of first provider
    AI_ANSWER_TIMEOUT_SECONDS: float = 20.0
    AI_CONTEXT_MAX_CHARS: int = 8000

    # --- Search ---
    SEARCH_SIMILARITY_THRESHOLD: float = 0.3
    SEARCH_DEFAULT_LIMIT: int = 3
    SEARCH_MAX_LIMIT: int = 20
    SEARCH_MAX_QUERY_LENGTH: int = 1000
    TITLE_SEARCH_LIMIT: int = 5

    @property
    def async_database_url(self) -> str:
        """Ensure the database URL uses the asyncpg driver."""
        url = self.DATABASE_URL
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings singleton."""
    return Settings()
