"""Configuration management for the funding workflows."""

from typing import Optional
from pydantic import ValidationError
from pydantic_settings import BaseSettings


REQUIRED_VARS = [
    "ESCROW_API_URL",
    "ESCROW_API_KEY",
    "BACKEND_API_URL",
    "SIGNER_BRIDGE_URL",
]

USDC_TRUSTLINE_ADDRESS = "CBIELTK6YBZJU5UP2WWQEUCYKLPU6AUNZ2BQ4WWFEIE3USCIHMXQDAMA"


class Config(BaseSettings):
    """Application configuration from environment variables."""

    # Required
    escrow_api_url: str
    escrow_api_key: str
    backend_api_url: str
    signer_bridge_url: str

    # Optional
    backend_api_token: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    platform_fee_percent: float = 4.0
    trustline_address: str = USDC_TRUSTLINE_ADDRESS
    network_passphrase: str = ""
    request_timeout_seconds: float = 60.0
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "case_sensitive": False}


def validate_config() -> Config:
    """Load and validate configuration from environment.

    Raises ValueError with descriptive message listing ALL missing
    required variables (not just the first one).
    """
    try:
        return Config()  # type: ignore[call-arg]
    except ValidationError as exc:
        absent = {
            str(error["loc"][0]).lower()
            for error in exc.errors()
            if error["type"] == "missing" and error["loc"]
        }
        missing = [var for var in REQUIRED_VARS if var.lower() in absent]
        if missing:
            names = ", ".join(missing)
            raise ValueError(
                f"Missing required environment variable(s): {names}. "
                "Please set them in your .env file or environment."
            ) from exc
        raise


def load_config() -> Config:
    """Load configuration from environment (startup entry point)."""
    return validate_config()
