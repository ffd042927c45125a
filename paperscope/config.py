from typing import List, Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings, SettingsConfigDict

CLOUD_SQL_SOCKET_PREFIX = "/cloudsql/"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database settings
    db_host: str = "127.0.0.1"
    db_port: int = 3306
    db_socket_path: str = ""
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "paperscope"
    db_ssl: bool = True
    db_pool_size: int = 10
    db_pool_timeout: float = 60.0
    db_connect_timeout: int = 30

    # Generative AI settings (recommendations)
    gcp_project_id: str = ""
    gcp_location: str = "us-central1"
    vertex_ai_model: str = "gemini-2.5-flash"
    genai_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    google_application_credentials: str = ""
    recommendation_timeout: float = 30.0

    # Server settings
    host: str = "0.0.0.0"
    port: int = 4000
    cors_origins: str = "*"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def socket_path(self) -> Optional[str]:
        """Unix socket path, if the database is reached over a socket"""
        if self.db_socket_path:
            return self.db_socket_path
        if self.db_host.startswith(CLOUD_SQL_SOCKET_PREFIX):
            return self.db_host
        return None

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL for the aiomysql driver"""
        credentials = f"{quote_plus(self.db_user)}:{quote_plus(self.db_password)}"
        if self.socket_path:
            # Host and port are ignored by the driver when unix_socket is set
            return f"mysql+aiomysql://{credentials}@localhost/{quote_plus(self.db_name)}"
        return f"mysql+aiomysql://{credentials}@{self.db_host}:{self.db_port}/{quote_plus(self.db_name)}"

    @property
    def recommendations_enabled(self) -> bool:
        return bool(self.gcp_project_id)

    @property
    def genai_endpoint(self) -> str:
        """generateContent URL for the configured model"""
        return f"{self.genai_api_base.rstrip('/')}/models/{self.vertex_ai_model}:generateContent"

    @property
    def allowed_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


settings = Settings()
