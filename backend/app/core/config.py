# Environment and settings
# pydantic-settings reads .env = core/config.py

from typing import Optional
from decimal import Decimal
from pydantic import SecretStr, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# When running uvicorn directly (outside Docker) model_config.env_file=".env"
# picks up backend/.env

class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",
        case_sensitive=False,
    )

    # ========= project config =========
    PROJECT_NAME: str = "FINA Stock Sync"
    ENVIRONMENT: str = "dev"
    API_PREFIX: str = "/api/v1"
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173"
    # empty -> ops endpoints are open (local dev only)
    OPS_API_TOKEN: Optional[SecretStr] = Field(None, alias="OPS_API_TOKEN")


    # ========= celery config =========
    CELERY_BROKER_URL: Optional[str] = None
    CELERY_RESULT_BACKEND: Optional[str] = None
    CELERY_TIMEZONE: str = "Asia/Tbilisi"
    SYNC_TASKS_INLINE: bool = Field(default=False, alias="SYNC_TASKS_INLINE")     # True -> /sync/start runs every chunk in-process


    # ========= FINA Base Config =========
    FINA_BASE_URL: str = Field("http://178.134.149.81:8082", alias="FINA_BASE_URL", description="FINA web API base URL")
    FINA_LOGIN: Optional[str] = Field(None, alias="FINA_LOGIN")
    FINA_PASSWORD: Optional[SecretStr] = Field(None, alias="FINA_PASSWORD")
    FINA_CONNECT_TIMEOUT: int = Field(10, ge=1, alias="FINA_CONNECT_TIMEOUT")
    FINA_READ_TIMEOUT: int = Field(60, ge=1, alias="FINA_READ_TIMEOUT")
    FINA_TOKEN_TTL_SEC: int = Field(36 * 60 * 60, ge=60, alias="FINA_TOKEN_TTL_SEC")          # token lives 36h
    FINA_HTTP_RETRIES: int = Field(0, ge=0, le=5, alias="FINA_HTTP_RETRIES")                    # 0 = single request/response

    # ========= FINA operation API config =========
    FINA_AUTH_ENDPOINT: str = "/api/authentication/authenticate"
    FINA_PRODUCTS_ENDPOINT: str = "/api/operation/getProducts"
    FINA_PRODUCTS_REST_ENDPOINT: str = "/api/operation/getProductsRestByStore/{store_id}"
    FINA_PRODUCT_PRICES_ENDPOINT: str = "/api/operation/getProductPrices"
    FINA_PRODUCTS_AFTER_ENDPOINT: str = "/api/operation/getProductsAfter/{after}"
    FINA_CUSTOMERS_ENDPOINT: str = "/api/operation/getCustomers"
    FINA_INFO_ENDPOINT: str = "/api/info/getapiinfo"

    FINA_STORE_ID: int = Field(1, ge=1, alias="FINA_STORE_ID")                  # quantities are read from one store
    FINA_PRICE_ID_CHANNEL_A: int = Field(3, alias="FINA_PRICE_ID_CHANNEL_A")    # B2C price tier
    FINA_PRICE_ID_CHANNEL_B: int = Field(5, alias="FINA_PRICE_ID_CHANNEL_B")    # B2B price tier
    FINA_VISIBILITY_FIELD_A: str = Field("usr_column_503", alias="FINA_VISIBILITY_FIELD_A")
    FINA_VISIBILITY_FIELD_B: str = Field("usr_column_504", alias="FINA_VISIBILITY_FIELD_B")


    # ========= Shopify API Config =========
    SHOPIFY_SHOP: str = Field("fina-integration.myshopify.com", alias="SHOPIFY_SHOP")
    SHOPIFY_ADMIN_TOKEN: Optional[SecretStr] = Field(None, alias="SHOPIFY_ADMIN_TOKEN")      # must be set at runtime
    SHOPIFY_API_VERSION: str = Field("2025-07", alias="SHOPIFY_API_VERSION")
    SHOPIFY_LOCATION_ID: Optional[str] = Field(None, alias="SHOPIFY_LOCATION_ID")            # empty -> first location

    # network / HTTP
    SHOPIFY_HTTP_TIMEOUT: int = Field(30, alias="SHOPIFY_HTTP_TIMEOUT")
    SHOPIFY_HTTP_RETRIES: int = Field(0, ge=0, le=5, alias="SHOPIFY_HTTP_RETRIES")
    SHOPIFY_HTTP_BACKOFF_MS: int = Field(200, alias="SHOPIFY_HTTP_BACKOFF_MS")
    SHOPIFY_VARIANTS_PAGE_SIZE: int = Field(250, ge=1, le=250, alias="SHOPIFY_VARIANTS_PAGE_SIZE")


    # ========= stock sync engine =========
    SYNC_DEFAULT_LIMIT: int = Field(1500, ge=1, alias="SYNC_DEFAULT_LIMIT")             # external chunk size
    SYNC_INTERNAL_CHUNK_SIZE: int = Field(250, ge=1, alias="SYNC_INTERNAL_CHUNK_SIZE")  # sub-chunk per variant preload
    SYNC_CONCURRENCY: int = Field(30, ge=1, le=64, alias="SYNC_CONCURRENCY")            # products in flight
    SYNC_SKU_BATCH_SIZE: int = Field(50, ge=1, le=250, alias="SYNC_SKU_BATCH_SIZE")     # SKUs per OR-query
    SYNC_SUBCHUNK_DELAY_SEC: float = Field(0.0, ge=0, alias="SYNC_SUBCHUNK_DELAY_SEC")
    SYNC_CHUNK_DELAY_SEC: int = Field(2, ge=0, alias="SYNC_CHUNK_DELAY_SEC")            # between external chunks
    SYNC_RESULTS_PREVIEW: int = Field(50, ge=0, alias="SYNC_RESULTS_PREVIEW")
    SYNC_PRICE_TOLERANCE: Decimal = Field(Decimal("0.01"), alias="SYNC_PRICE_TOLERANCE")
    SYNC_CHANNEL_RULE: str = Field("position", alias="SYNC_CHANNEL_RULE")               # position | title
    SYNC_CHANNEL_MARKER_A: str = Field("B2C", alias="SYNC_CHANNEL_MARKER_A")
    SYNC_CHANNEL_MARKER_B: str = Field("B2B", alias="SYNC_CHANNEL_MARKER_B")


settings = Settings()  # environment only (including .env)
