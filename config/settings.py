"""
Cross-Venue Runtime Configuration
TTLs, thresholds and upstream endpoints for the execution layer
"""
from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings

from execution_layer.runtime_cache import RuntimeTtls


class RuntimeSettings(BaseSettings):
    """Execution-layer settings, read from the environment / .env"""

    # Runtime registry TTLs (seconds)
    bank_ttl_s: float = Field(default=30.0, gt=0, validation_alias="BANK_TTL_S")
    gas_ttl_s: float = Field(default=15.0, gt=0, validation_alias="GAS_TTL_S")
    venue_metadata_ttl_s: float = Field(default=60.0, gt=0, validation_alias="VENUE_METADATA_TTL_S")
    payout_limits_ttl_s: float = Field(default=30.0, gt=0, validation_alias="PAYOUT_LIMITS_TTL_S")
    sequencer_ttl_s: float = Field(default=10.0, gt=0, validation_alias="SEQUENCER_TTL_S")

    # Ladder venue client keeps its own metadata cache
    ladder_metadata_ttl_s: float = Field(default=60.0, gt=0, validation_alias="LADDER_METADATA_TTL_S")

    # Quote simulation: reject when |marginal - quoted| exceeds this
    delta_odd_reject: float = Field(default=0.02, gt=0, validation_alias="DELTA_ODD_REJECT")

    # Chains - JSON in env, e.g. RPC_URLS='{"arbitrum-one": "https://..."}'
    rpc_urls: Dict[str, str] = Field(default_factory=dict, validation_alias="RPC_URLS")
    sequencer_chain: str = Field(default="arbitrum-one", validation_alias="SEQUENCER_CHAIN")
    sequencer_max_block_age_s: float = Field(default=60.0, gt=0, validation_alias="SEQUENCER_MAX_BLOCK_AGE_S")

    # Treasury
    wallet_address: str = Field(default="", validation_alias="WALLET_ADDRESS")
    bank_tokens: Dict[str, str] = Field(default_factory=dict, validation_alias="BANK_TOKENS")
    bank_token_decimals: int = Field(default=6, ge=0, validation_alias="BANK_TOKEN_DECIMALS")
    balance_alert_usd: float = Field(default=15.0, ge=0, validation_alias="BALANCE_ALERT_USD")

    # Venue REST endpoints
    ladder_venue_api_url: str = Field(default="", validation_alias="LADDER_VENUE_API_URL")
    quote_venue_api_url: str = Field(default="", validation_alias="QUOTE_VENUE_API_URL")

    http_timeout_s: float = Field(default=5.0, gt=0, validation_alias="HTTP_TIMEOUT_S")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",  # Ignore unknown env vars
        "populate_by_name": True,  # Allow both field name and alias
    }

    def runtime_ttls(self) -> RuntimeTtls:
        return RuntimeTtls(
            bank=self.bank_ttl_s,
            gas=self.gas_ttl_s,
            venue_metadata=self.venue_metadata_ttl_s,
            payout_limits=self.payout_limits_ttl_s,
            sequencer=self.sequencer_ttl_s,
        )

    def missing_endpoints(self) -> List[str]:
        """Names of settings the live fetchers cannot run without."""
        missing = []
        if not self.rpc_urls:
            missing.append("RPC_URLS")
        if self.sequencer_chain not in self.rpc_urls:
            missing.append(f"RPC_URLS[{self.sequencer_chain}]")
        if not self.wallet_address:
            missing.append("WALLET_ADDRESS")
        if not self.bank_tokens:
            missing.append("BANK_TOKENS")
        if not self.ladder_venue_api_url:
            missing.append("LADDER_VENUE_API_URL")
        if not self.quote_venue_api_url:
            missing.append("QUOTE_VENUE_API_URL")
        return missing

    def is_configured(self) -> bool:
        return not self.missing_endpoints()


def get_settings(**overrides) -> RuntimeSettings:
    """Fresh settings instance; there is no module-level global."""
    return RuntimeSettings(**overrides)
