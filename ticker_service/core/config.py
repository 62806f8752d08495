from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# Wrapped / bridged variants quoted at the same USD price as their underlying asset.
DEFAULT_CURRENCY_ALIASES: dict[str, list[str]] = {
    "btc": ["wbtc"],
    "eth": ["weth"],
    "bnb": ["wbnb"],
    "usdt": ["usdt_bep20", "usdt_erc20"],
    "usdc": ["usdc_bep20", "usdc_erc20"],
    "busd": ["busd_bep20"],
}

_FALSY_FLAGS = {"", "false", "no", "0"}


class Settings(BaseSettings):
    http_host: str = Field(default="0.0.0.0", alias="HTTP_HOST")
    http_port: int = Field(default=5000, alias="HTTP_PORT")
    supply_rpc_url: str = Field(default="https://mainnet.velas.com/rpc", alias="SUPPLY_RPC_URL")
    quotes_base_url: str = Field(default="https://pro-api.coinmarketcap.com", alias="QUOTES_BASE_URL")
    cmc_api_key: str = Field(..., alias="CMC_API_KEY", min_length=1)
    tracked_symbol: str = Field(default="VLX", alias="TRACKED_SYMBOL")
    reference_symbol: str = Field(default="BTC", alias="REFERENCE_SYMBOL")
    currencies: str = Field(default="BTC,ETH,USDT,USDC,BUSD,BNB", alias="CURRENCIES")
    currency_aliases: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_CURRENCY_ALIASES.items()},
        alias="CURRENCY_ALIASES",
    )
    refresh_period_seconds: float = Field(default=30.0, alias="REFRESH_PERIOD_SECONDS", gt=0)
    refresh_timeout_seconds: float = Field(default=10.0, alias="REFRESH_TIMEOUT_SECONDS", gt=0)
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="text", alias="LOG_FORMAT")
    config_template_path: str = Field(default="config.toml", alias="CONFIG_TEMPLATE_PATH")

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True

    @field_validator("debug", mode="before")
    @classmethod
    def _parse_debug(cls, value):
        # Any value other than an explicit "off" spelling turns verbose mode on.
        if isinstance(value, str):
            return value.strip().lower() not in _FALSY_FLAGS
        return bool(value)

    @field_validator("currency_aliases")
    @classmethod
    def _lowercase_aliases(cls, value: dict[str, list[str]]) -> dict[str, list[str]]:
        return {code.lower(): [alias.lower() for alias in aliases] for code, aliases in value.items()}

    @property
    def tracked_code(self) -> str:
        return self.tracked_symbol.strip().lower()

    @property
    def reference_code(self) -> str:
        return self.reference_symbol.strip().lower()

    @property
    def symbols(self) -> list[str]:
        """Upper-case symbols requested from the quotes API, tracked token first."""
        out = [self.tracked_symbol.strip().upper(), self.reference_symbol.strip().upper()]
        for symbol in self.currencies.split(","):
            symbol = symbol.strip().upper()
            if symbol and symbol not in out:
                out.append(symbol)
        return out


@lru_cache
def get_settings() -> Settings:
    return Settings()
