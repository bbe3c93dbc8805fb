import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
DOTENV_PATH = (Path(__file__).resolve().parent.parent.parent / ".env")
load_dotenv(dotenv_path=DOTENV_PATH, override=False)


def _env_bool(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip() in {"1", "true", "True", "YES", "yes"}


class Settings:
    # App Configuration
    APP_TITLE: str = os.getenv("APP_TITLE", "Stageflow - Staged SQL Transformations").strip()
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper()

    # Analytical engine (one DuckDB connection per process)
    DUCKDB_DATABASE: str = os.getenv("DUCKDB_DATABASE", ":memory:").strip()
    PREVIEW_ROW_LIMIT: int = int(os.getenv("PREVIEW_ROW_LIMIT", "100"))

    # Azure OpenAI Configuration (stage suggestions)
    AZURE_OPENAI_ENDPOINT: str = os.getenv("AZURE_OPENAI_ENDPOINT", "").strip().rstrip("/")
    AZURE_OPENAI_API_KEY: str = os.getenv("AZURE_OPENAI_API_KEY", "").strip()
    AZURE_OPENAI_DEPLOYMENT: str = os.getenv("AZURE_OPENAI_DEPLOYMENT", "").strip()
    AZURE_OPENAI_API_VERSION: str = os.getenv("AZURE_OPENAI_API_VERSION", "2025-01-01-preview").strip()
    DISABLE_AZURE_LLM: bool = _env_bool("DISABLE_AZURE_LLM")
    LLM_TIMEOUT_SECONDS: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))
    LLM_MAX_RETRIES: int = int(os.getenv("LLM_MAX_RETRIES", "3"))

    @property
    def llm_enabled(self) -> bool:
        return (
            not self.DISABLE_AZURE_LLM
            and bool(self.AZURE_OPENAI_ENDPOINT)
            and bool(self.AZURE_OPENAI_API_KEY)
            and bool(self.AZURE_OPENAI_DEPLOYMENT)
        )

    def validate(self):
        if self.PREVIEW_ROW_LIMIT < 1:
            raise RuntimeError("PREVIEW_ROW_LIMIT must be at least 1.")
        if self.LLM_MAX_RETRIES < 1:
            raise RuntimeError("LLM_MAX_RETRIES must be at least 1.")


settings = Settings()
settings.validate()
