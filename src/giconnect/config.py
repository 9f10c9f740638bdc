import re

from pydantic_settings import BaseSettings
from pydantic import field_validator

from giconnect.constants import MAX_IMAGES_CAP

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class ApiConfig(BaseSettings):
    # Application Configuration
    APP_NAME: str = "giconnect"
    API_ROUTER_PATH_PREFIX: str = "/api/giconnect/v1"
    CORS_ORIGINS: str = "http://localhost:5173,https://gi-connectivity.lovable.app"

    # BigQuery warehouse
    BQ_KEY_JSON: str = ""
    BQ_PROJECT_ID: str = ""
    BQ_DATASET: str = "gi_connect"
    BQ_EVENTS_TABLE: str = "raw_events"
    BQ_ORDERS_TABLE: str = "orders"
    BQ_PRODUCTS_TABLE: str = "products"
    BQ_API_BASE_URL: str = "https://bigquery.googleapis.com/bigquery/v2"

    # Image worker
    WORKER_SHARED_SECRET: str = ""
    VERTEX_PROJECT_ID: str = ""
    VERTEX_LOCATION: str = "us-central1"
    VISION_MODEL_NAME: str = "gemini-2.0-flash"
    IMAGE_MODEL_NAME: str = "imagen-3.0-generate-002"
    EDIT_MODEL_NAME: str = "imagen-3.0-capability-001"
    MAX_GENERATED_IMAGES: int = MAX_IMAGES_CAP

    # Object storage (Supabase Storage)
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_BUCKET: str = "generated-images"

    # Chat relay
    CHATBOT_BACKEND_URL: str = ""

    VERIFY_SSL: bool = True
    DEFAULT_TIMEOUT: float = 30.0

    # Langfuse Tracing Configuration
    LANGFUSE_TRACING_ENABLED: bool = False
    LANGFUSE_SECRET_KEY: str = ""
    LANGFUSE_PUBLIC_KEY: str = ""
    LANGFUSE_BASE_URL: str = "http://localhost:3000"

    @field_validator("VERIFY_SSL", "LANGFUSE_TRACING_ENABLED", mode="before")
    def convert_bool_strings(cls, value):
        if isinstance(value, str):
            if value.lower() == "true":
                return True
            elif value.lower() == "false":
                return False
        return value

    @field_validator("MAX_GENERATED_IMAGES")
    def clamp_max_images(cls, value: int) -> int:
        return max(1, min(MAX_IMAGES_CAP, value))

    @field_validator("BQ_DATASET", "BQ_EVENTS_TABLE", "BQ_ORDERS_TABLE", "BQ_PRODUCTS_TABLE")
    def check_identifier(cls, value: str) -> str:
        if not _IDENTIFIER_PATTERN.match(value):
            raise ValueError(f"invalid BigQuery identifier: {value!r}")
        return value

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        case_sensitive = True
        extra = "allow"


app_cfg = ApiConfig(_env_file=".env")
