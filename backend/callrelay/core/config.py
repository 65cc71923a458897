import json
from typing import List

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def split_origins(raw: object) -> List[str]:
    """CORS_ORIGINS may be a JSON array or a comma separated list."""
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        items = list(raw)
    else:
        text = str(raw).strip()
        items = json.loads(text) if text.startswith("[") else text.split(",")
    # Browsers send Origin without a trailing slash.
    return [str(item).strip().rstrip("/") for item in items if str(item).strip()]


class Settings(BaseSettings):
    app_name: str = "OpenPhone CRM Relay"
    environment: str = "development"
    database_url: str = "postgresql+psycopg2://relay:relay@db:5432/callrelay"
    bind_host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]
    tenants_json: str = Field(
        default="[]",
        validation_alias=AliasChoices("TENANTS_JSON", "GHL_API_KEY_MAP_JSON"),
    )
    crm_base_url: str = "https://rest.gohighlevel.com/v1"
    crm_api_version: str = "2021-07-28"
    crm_timeout_seconds: float = 10.0
    meeting_tag_prefix: str = "meeting-scheduled-"
    report_max_concurrency: int = Field(default=5, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_parse_json=False,
        populate_by_name=True,
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_cors_origins(cls, value: object) -> List[str]:
        return split_origins(value)


settings = Settings()
