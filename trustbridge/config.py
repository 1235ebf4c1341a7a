from pathlib import Path
from typing import Annotated, Any, Dict, List, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

DEFAULT_SUPPORTED_FIAT = [
    "USD",
    "EUR",
    "JPY",
    "AUD",
    "CAD",
    "SGD",
    "MYR",
    "THB",
    "PHP",
    "BND",
    "CNY",
    "IDR",
]


def _split_codes(value: Any) -> Any:
    if isinstance(value, str):
        return [part.strip().upper() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return [str(part).strip().upper() for part in value if str(part).strip()]
    return value


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    environment: str = Field(default="development", description="Deployment environment")
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Backend REST service
    backend_api_url: str = Field(
        default="https://api-trustbridge.izcy.tech",
        description="Base URL of the transaction/authentication backend",
    )
    backend_api_timeout_seconds: float = Field(default=30.0, description="Backend request timeout")

    # Rate providers
    freecurrency_api_key: str = Field(default="", description="FreeCurrencyAPI key (fiat rates)")
    cmc_api_key: str = Field(default="", description="CoinMarketCap API key (crypto quotes)")
    provider_timeout_seconds: float = Field(default=10.0, description="Rate provider request timeout")

    # Cache Settings
    rate_cache_ttl_seconds: int = Field(default=300, description="Exchange rate cache TTL in seconds")
    rate_cache_sweep_seconds: int = Field(default=60, description="How often expired rates are purged")

    # Fees
    fee_percentage: float = Field(default=0.015, ge=0, lt=1, description="Transfer fee rate (0.015 = 1.5%)")

    # Status polling
    poll_interval_seconds: float = Field(default=15.0, description="Shared status polling interval")
    max_poll_duration_seconds: float = Field(default=30 * 60, description="Stop tracking a transfer after this long")
    max_poll_count: int = Field(default=120, description="Stop tracking a transfer after this many polls")
    max_poll_errors: int = Field(default=10, description="Poll count after which fetch errors become terminal")

    # Currencies
    supported_fiat: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_SUPPORTED_FIAT),
        description="Fiat codes payable by card and routed to the fiat provider",
    )
    wallet_tokens: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["USDT", "ADA"],
        description="Token codes payable from a wallet",
    )
    recipient_currencies: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["IDR"],
        description="Currencies a recipient can be paid out in",
    )
    settlement_fiat: str = Field(default="IDR", description="Fiat that wallet tokens are quoted against")
    inverse_quote_pairs: Annotated[List[Tuple[str, str]], NoDecode] = Field(
        default_factory=lambda: [("USDT", "IDR"), ("ADA", "IDR")],
        description="token:fiat pairs quoted token-first; fiat->token is the reciprocal",
    )
    static_fallback_rates: Dict[str, float] = Field(
        default_factory=lambda: {"USDT:IDR": 16740.0, "IDR:USDT": 0.0000597},
        description="Last-resort rates keyed 'FROM:TO'",
    )

    # Webhooks / messaging
    webhook_secret: str = Field(default="", description="HMAC secret for inbound transaction webhooks")
    chat_gateway_url: str = Field(default="", description="Outbound chat gateway used to push notifications")

    # Auth sessions
    auth_session_ttl_seconds: int = Field(default=3600, description="Backend session lifetime")
    auth_expiry_buffer_seconds: int = Field(default=300, description="Refresh sessions this long before expiry")

    @field_validator("supported_fiat", "wallet_tokens", "recipient_currencies", mode="before")
    @classmethod
    def _parse_codes(cls, value: Any) -> Any:
        return _split_codes(value)

    @field_validator("inverse_quote_pairs", mode="before")
    @classmethod
    def _parse_pairs(cls, value: Any) -> Any:
        if isinstance(value, str):
            pairs = []
            for chunk in value.split(","):
                if not chunk.strip():
                    continue
                base, _, quote = chunk.partition(":")
                if not quote:
                    raise ValueError(f"Invalid quote pair '{chunk}', expected TOKEN:FIAT")
                pairs.append((base.strip().upper(), quote.strip().upper()))
            return pairs
        return value

    @field_validator("max_poll_count", "max_poll_errors")
    @classmethod
    def _positive_count(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @field_validator("poll_interval_seconds")
    @classmethod
    def _min_interval(cls, value: float) -> float:
        if value < 1:
            raise ValueError("must be at least 1 second")
        return value

    @field_validator("max_poll_duration_seconds", "rate_cache_ttl_seconds", "rate_cache_sweep_seconds")
    @classmethod
    def _positive_duration(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("settlement_fiat")
    @classmethod
    def _upper_code(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in {"production", "prod"}

    @property
    def has_cmc_key(self) -> bool:
        return bool(self.cmc_api_key)

    @property
    def has_freecurrency_key(self) -> bool:
        return bool(self.freecurrency_api_key)

    def fallback_rate_table(self) -> Dict[Tuple[str, str], float]:
        """Static fallback rates keyed by ordered currency pair."""
        table: Dict[Tuple[str, str], float] = {}
        for key, rate in self.static_fallback_rates.items():
            base, _, quote = key.partition(":")
            if base and quote:
                table[(base.strip().upper(), quote.strip().upper())] = float(rate)
        return table


# Global settings instance
settings = Settings()
