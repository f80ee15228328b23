"""
Cross-Venue Execution Runtime - Main Entry Point

Runs the pre-flight runtime checks against live upstreams:
- Treasury balance per chain (alert below threshold)
- Gas price per chain
- Sequencer liveness
- Ladder venue metadata (odds ladder, slippage, timings)
- Quote venue payout limits

Every fact is served through one RuntimeRegistry, so each upstream is
hit at most once per TTL window.
"""

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from config import RuntimeSettings, get_settings
from execution_layer.errors import ConfigurationError
from execution_layer.runtime_cache import RuntimeFetchers, RuntimeRegistry
from execution_layer.utils import (
    BankBalanceFetcher,
    GasPriceFetcher,
    HttpLimitsProvider,
    HttpMetadataProvider,
    SequencerHealthFetcher,
    VenueApiClient,
)
from utils.startup_check import perform_runtime_checks

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def build_registry(settings: RuntimeSettings):
    """
    Wire live fetchers into a RuntimeRegistry.

    Returns:
        Tuple of (registry, closeables)
    """
    timeout = settings.http_timeout_s
    gas = GasPriceFetcher(settings.rpc_urls, timeout=timeout)
    bank = BankBalanceFetcher(
        settings.wallet_address,
        settings.rpc_urls,
        settings.bank_tokens,
        decimals=settings.bank_token_decimals,
        timeout=timeout,
    )
    sequencer = SequencerHealthFetcher(
        settings.sequencer_chain,
        settings.rpc_urls[settings.sequencer_chain],
        max_block_age=settings.sequencer_max_block_age_s,
        timeout=timeout,
    )
    ladder_api = VenueApiClient(settings.ladder_venue_api_url, timeout=timeout)
    quote_api = VenueApiClient(settings.quote_venue_api_url, timeout=timeout)

    fetchers = RuntimeFetchers(
        bank=bank,
        gas=gas,
        venue_metadata=HttpMetadataProvider(ladder_api).latest,
        payout_limits=HttpLimitsProvider(quote_api).latest,
        sequencer=sequencer,
    )
    registry = RuntimeRegistry.from_settings(settings, fetchers)
    return registry, [gas, bank, sequencer, ladder_api, quote_api]


async def run_checks(settings: RuntimeSettings, chains, alert_threshold: float, verbose: bool) -> bool:
    registry, closeables = build_registry(settings)
    logger.info(f"Runtime registry ready: {registry!r}")
    try:
        success, issues = await perform_runtime_checks(
            registry, chains, alert_threshold_usd=alert_threshold, verbose=verbose
        )
    finally:
        for client in closeables:
            await client.close()

    for issue in issues:
        logger.error(f"Runtime check failed: {issue}")
    return success


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Cross-Venue Execution Runtime - pre-flight checks"
    )
    parser.add_argument(
        "--chains",
        nargs="+",
        default=None,
        help="Chains to check gas on (default: every chain in RPC_URLS)"
    )
    parser.add_argument(
        "--alert-threshold",
        type=float,
        default=None,
        help="Per-chain treasury alert threshold in USD (default: BALANCE_ALERT_USD)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    settings = get_settings()
    logging.getLogger().setLevel(logging.DEBUG if args.verbose else settings.log_level.upper())

    missing = settings.missing_endpoints()
    if missing:
        print(f"✗ Missing configuration: {', '.join(missing)}")
        print("  Fill in .env with your endpoints")
        return 1

    chains = args.chains or list(settings.rpc_urls)
    alert_threshold = (
        args.alert_threshold if args.alert_threshold is not None else settings.balance_alert_usd
    )

    try:
        success = asyncio.run(run_checks(settings, chains, alert_threshold, verbose=True))
    except ConfigurationError as e:
        print(f"✗ Invalid configuration: {e}")
        return 1
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
