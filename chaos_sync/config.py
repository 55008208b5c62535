"""Configuration settings for the Chaos Organizer sync engine."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine settings loaded from environment variables (CHAOS_SYNC_*)."""

    # Chaos Organizer backend (REST API and push channel share the host)
    api_url: str = "http://localhost:3000"

    # Path of the push channel endpoint on the backend
    ws_path: str = "/ws"

    # Messages per page for first load and for each lazy-load step
    page_size: int = 20

    # Distance from the top of the list (px) that triggers loading older messages
    scroll_threshold: int = 150

    # HTTP request timeout (seconds)
    request_timeout: float = 30.0

    # Push channel reconnect policy (seconds)
    reconnect_base_delay: float = 1.0
    reconnect_multiplier: float = 2.0
    reconnect_max_delay: float = 30.0
    reconnect_max_attempts: int = 10

    # Author name put on messages sent from this client
    author: str = "User"

    # Logging level
    log_level: str = "INFO"

    model_config = {
        "env_prefix": "CHAOS_SYNC_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def ws_url(self) -> str:
        """Push channel URL derived from the API URL (http -> ws, https -> wss)."""
        base = self.api_url.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        return f"{base}{self.ws_path}"


settings = Settings()
