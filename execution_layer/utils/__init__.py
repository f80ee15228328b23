"""
Execution Layer Utilities - upstream fetchers for the runtime registry
"""
from .rpc_client import BankBalanceFetcher, GasPriceFetcher, JsonRpcClient, SequencerHealthFetcher
from .venue_api import (
    HttpLimitsProvider,
    HttpMetadataProvider,
    RegistryLimitsProvider,
    RegistryMetadataProvider,
    VenueApiClient,
)

__all__ = [
    "BankBalanceFetcher",
    "GasPriceFetcher",
    "JsonRpcClient",
    "SequencerHealthFetcher",
    "HttpLimitsProvider",
    "HttpMetadataProvider",
    "RegistryLimitsProvider",
    "RegistryMetadataProvider",
    "VenueApiClient",
]
