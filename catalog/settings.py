from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # database_url: str = "postgresql+psycopg://catalog@localhost:5432/catalog"
    database_url: str = "sqlite:///catalog.db"

    # Batch import
    import_concurrency: int = 10  # 상품 upsert 동시 처리 수
    import_default_products_path: str = "./gmarket1.products.createMany.enriched2.json"
    import_default_images_path: str = "./gmarket1.images.createMany.enriched2.json"
    import_report_error_limit: int = 10  # 리포트에 노출할 최대 에러 수

    # Image search / enrichment (optional)
    image_search_enabled: bool = False
    image_search_rights: str = ""
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_api_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    google_cloud_api_key: str = ""
    custom_search_engine_id: str = ""
    google_search_url: str = "https://www.googleapis.com/customsearch/v1"
    enrichment_retry_count: int = 3  # tenacity 재시도 횟수
    http_timeout_seconds: float = 10.0

    def image_search_configured(self) -> bool:
        return bool(self.google_cloud_api_key and self.custom_search_engine_id)

    @field_validator("database_url")
    @classmethod
    def validate_db_url(cls, v: str) -> str:
        if v and not v.startswith(("postgresql", "sqlite")):
            raise ValueError("DB URL은 'postgresql' 또는 'sqlite'로 시작해야 합니다.")
        return v

    @field_validator("gemini_api_base_url", "google_search_url")
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL은 'http://' 또는 'https://'로 시작해야 합니다.")
        return v

    @field_validator("import_concurrency")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if not 1 <= v <= 50:
            raise ValueError("import_concurrency는 1에서 50 사이여야 합니다.")
        return v

    @field_validator("http_timeout_seconds")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("타임아웃은 0 이상이어야 합니다.")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=False)


settings = Settings()
