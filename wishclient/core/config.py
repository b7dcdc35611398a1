from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "WishShare Client"

    # REST API root; every path in the gateway is relative to it
    api_base_url: str = "http://localhost:8080/api"
    validate_path: str = "/auth/validate"
    request_timeout_seconds: float = 15.0

    # Durable credential storage. Empty path keeps the token in memory only.
    token_storage_path: str = ".wishshare/credentials.json"
    token_storage_key: str = "token"

    log_level: str = "INFO"
    log_file: str = ""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "allow",
    }

    @property
    def normalized_base_url(self) -> str:
        """Base URL without the trailing slash, so paths can start with '/'."""
        return (self.api_base_url or "").strip().rstrip("/")


settings = Settings()
