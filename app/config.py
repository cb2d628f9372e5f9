from decimal import Decimal
from functools import lru_cache
from typing import Annotated, List

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = Field(default="Academy Invoicing Service")
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )
    backend_base_url: AnyHttpUrl | None = Field(
        default=None
    )
    backend_api_key: str | None = Field(
        default=None
    )
    backend_timeout: float = Field(
        default=10.0
    )
    use_mock_data: bool = Field(
        default=True
    )

    currency_symbol: str = Field(default="$")
    default_tax_rate: Decimal = Field(default=Decimal("8.5"))
    payment_terms_days: int = Field(default=30)

    company_name: str = Field(default="ITwala Academy")
    company_address: str = Field(default="123 Education Street")
    company_city: str = Field(default="Learning City")
    company_zip_code: str = Field(default="12345")
    company_country: str = Field(default="United States")
    company_email: str = Field(default="billing@itwala.academy")
    company_phone: str = Field(default="+1 (555) 123-4567")
    company_website: str | None = Field(default="https://itwala.academy")
    company_logo: str | None = Field(default=None)
    company_gstin: str | None = Field(default=None)

    default_notes: str = Field(
        default="Thank you for choosing ITwala Academy. Payment is due within 30 days."
    )
    default_terms: str = Field(
        default=(
            "Payment is due within 30 days of invoice date. "
            "Late payments may incur additional fees."
        )
    )

    pdf_creator: str = Field(default="ITwala Academy Invoice Generator")
    pdf_compress: bool = Field(default=False)

    model_config = SettingsConfigDict(env_prefix="INVOICING_", case_sensitive=False)

    @field_validator("cors_origins", mode="before")
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()
