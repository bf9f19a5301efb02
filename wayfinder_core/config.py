from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    """
    Centralized client settings. Pydantic's BaseSettings will automatically
    load these from environment variables or a .env file.
    """
    # --- Remote API ---
    API_BASE_URL: str = Field("http://localhost:5000", description="Base URL of the Wayfinder REST API.")
    API_TIMEOUT_SECONDS: float = Field(30.0, description="Timeout applied to every remote call.")
    ACCEPT_LANGUAGE: str = Field("en", description="Language requested for localized API responses.")

    # --- Local Storage ---
    CACHE_DIR: str = Field(".wayfinder_cache", description="Directory used by the JSON file key-value store.")
    MAX_RECENT_SEARCHES: int = Field(20, description="Number of recent searches kept, most recent first.")

    # --- Search ---
    SEARCH_DEBOUNCE_MS: int = Field(300, description="Delay between the last keystroke and the search request.")
    SEARCH_MIN_QUERY_LENGTH: int = Field(2, description="Trimmed queries shorter than this never hit the network.")
    SEARCH_MAX_RESULTS: int = Field(50, description="Maximum number of nodes returned by a search.")

    # --- Connectivity ---
    CONNECTIVITY_PROBE_TIMEOUT_SECONDS: float = Field(5.0, description="Timeout of the active reachability probe.")

    # --- Logging ---
    LOG_LEVEL: str = Field("INFO", description="Level used by loggers created through get_logger.")

    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

settings = Settings()
