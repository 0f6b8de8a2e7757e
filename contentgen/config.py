"""Configuration loaded from environment (.env) and defaults."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Locate the project root .env file regardless of CWD
_THIS_DIR = Path(__file__).resolve().parent          # contentgen/
_PROJECT_ROOT = _THIS_DIR.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Text generation provider: openai | anthropic
    contentgen_llm_provider: str = "openai"

    # OpenAI (text + images)
    openai_api_key: str | None = None
    contentgen_openai_model: str = "gpt-4o"
    contentgen_image_model: str = "dall-e-3"

    # Anthropic
    anthropic_api_key: str | None = None
    contentgen_anthropic_model: str = "claude-3-5-sonnet-20241022"

    # DataForSEO (keyword data + SERP data)
    dataforseo_login: str | None = None
    dataforseo_password: str | None = None
    dataforseo_base_url: str = "https://api.dataforseo.com/v3"

    # Perplexity (market research)
    perplexity_api_key: str | None = None
    perplexity_base_url: str = "https://api.perplexity.ai"
    contentgen_perplexity_model: str = "llama-3.1-sonar-small-128k-online"

    # Data directory (file session store lives under <data_dir>/sessions)
    contentgen_data_dir: str = "./data"

    # Postgres session store; file store is used when unset
    contentgen_database_url: str | None = None

    # Per-capability provider timeouts, seconds
    timeout_keywords: float = 30.0
    timeout_keyword_analysis: float = 90.0
    timeout_serp: float = 45.0
    timeout_research: float = 60.0
    timeout_strategy: float = 90.0
    timeout_generation: float = 240.0
    timeout_scoring: float = 30.0
    timeout_images: float = 300.0
    timeout_quality: float = 90.0

    # Unit prices per priced capability, USD
    price_dataforseo: float = 0.075
    price_serp: float = 0.05
    price_perplexity: float = 0.10
    price_generation: float = 0.25
    price_images: float = 0.20

    # Optional YAML file overriding the unit prices ({capability: price})
    contentgen_pricing_file: str | None = None

    # Comma-separated stage ids that fail the whole session when they fail.
    # Empty means the built-in mandatory set.
    contentgen_mandatory_stages: str = ""

    # Concurrent sessions per service instance
    contentgen_max_workers: int = 4

    # Session snapshots kept in memory by the service; finished ones beyond
    # this are dropped and read back from the session store
    contentgen_snapshot_cache_size: int = 200

    # CORS origins (comma-separated)
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    cors_origin_regex: str | None = None

    # Server port
    port: int = 8000

    @property
    def data_dir(self) -> Path:
        """Data directory as Path; relative paths resolve against the project root."""
        p = Path(self.contentgen_data_dir)
        if not p.is_absolute():
            return (_PROJECT_ROOT / p).resolve()
        return p.resolve()

    @property
    def sessions_dir(self) -> Path:
        return self.data_dir / "sessions"

    @property
    def output_dir(self) -> Path:
        return self.data_dir / "output"

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def mandatory_stage_list(self) -> list[str] | None:
        """Mandatory stage override, or None for the built-in set."""
        ids = [s.strip() for s in self.contentgen_mandatory_stages.split(",") if s.strip()]
        return ids or None

    @property
    def timeouts(self) -> dict[str, float]:
        """Timeout per capability name."""
        return {
            "dataforseo": self.timeout_keywords,
            "keyword-analysis": self.timeout_keyword_analysis,
            "serp": self.timeout_serp,
            "perplexity": self.timeout_research,
            "strategy": self.timeout_strategy,
            "generation": self.timeout_generation,
            "seo-scoring": self.timeout_scoring,
            "images": self.timeout_images,
            "quality": self.timeout_quality,
        }

    @property
    def unit_prices(self) -> dict[str, float]:
        """Unit price per priced capability, with the YAML pricing file applied on top."""
        prices = {
            "dataforseo": self.price_dataforseo,
            "serp": self.price_serp,
            "perplexity": self.price_perplexity,
            "generation": self.price_generation,
            "images": self.price_images,
        }
        if self.contentgen_pricing_file:
            from contentgen.pipeline.cost import load_price_table

            prices.update(load_price_table(self.contentgen_pricing_file))
        return prices

    def ensure_dirs(self) -> None:
        """Ensure all data directories exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)


def get_settings() -> Settings:
    settings = Settings()
    settings.ensure_dirs()
    return settings
