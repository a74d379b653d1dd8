from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SETTLEMENT_", env_file=".env", extra="ignore")

    TOLERANCE: Decimal = Decimal("0.01")
    DEFAULT_WORKING_CURRENCY: str = "USD"
    DEFAULT_ALGORITHM: str = "greedy"
    SIMPLIFY_CYCLES: bool = True
    LOG_LEVEL: str = "INFO"


settings = Settings()
