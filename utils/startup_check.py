#!/usr/bin/env python3
"""
Pre-Flight Runtime Checks

Verifies every runtime fact the execution layer depends on:
1. Treasury balance per chain (alert below threshold)
2. Gas price reachable on every chain
3. Sequencer healthy
4. Venue metadata fresh with a usable odds ladder
5. Payout limits fresh and positive

Usage:
    from utils.startup_check import perform_runtime_checks
    success, issues = await perform_runtime_checks(registry, chains)
"""

import asyncio
import logging
from typing import Dict, List, Sequence, Tuple

import aiohttp
import httpx

from execution_layer.errors import ExecutionError
from execution_layer.ladder_client import resolve_ladder
from execution_layer.runtime_cache import RuntimeRegistry

logger = logging.getLogger(__name__)

DEFAULT_ALERT_THRESHOLD_USD: float = 15.0

UPSTREAM_ERRORS = (ExecutionError, httpx.HTTPError, aiohttp.ClientError, asyncio.TimeoutError)


async def check_bank_balances(
    registry: RuntimeRegistry,
    alert_threshold_usd: float = DEFAULT_ALERT_THRESHOLD_USD,
) -> Tuple[bool, str, Dict[str, float]]:
    """
    Every chain must hold at least ``alert_threshold_usd``.

    Returns:
        Tuple of (passed, message, per_chain_usd)
    """
    try:
        bank = await registry.get_bank()
    except UPSTREAM_ERRORS as e:
        return False, f"Bank balance unavailable: {e}", {}

    per_chain = dict(bank.per_chain_usd)
    low = []
    for chain, balance in sorted(per_chain.items()):
        if balance < alert_threshold_usd:
            logger.warning(f"balance_alert chain={chain} balance_usd={balance:.2f}")
            low.append(f"{chain} ${balance:.2f} < ${alert_threshold_usd:.2f}")

    if low:
        return False, "Low balance: " + "; ".join(low), per_chain
    return True, f"Bank OK: ${bank.total_usd:.2f} across {len(per_chain)} chains", per_chain


async def check_gas_prices(
    registry: RuntimeRegistry,
    chains: Sequence[str],
) -> Tuple[bool, str, Dict[str, float]]:
    """
    Gas price must be fetchable and fresh on every chain.

    Returns:
        Tuple of (passed, message, gwei_by_chain)
    """
    prices: Dict[str, float] = {}
    failures: List[str] = []
    for chain in chains:
        try:
            prices[chain] = (await registry.get_gas(chain)).price_gwei
        except UPSTREAM_ERRORS as e:
            failures.append(f"{chain}: {e}")

    if failures:
        return False, "Gas unavailable: " + "; ".join(failures), prices
    rendered = ", ".join(f"{c}={g:.3f} gwei" for c, g in prices.items())
    return True, f"Gas OK: {rendered or 'no chains'}", prices


async def check_sequencer(registry: RuntimeRegistry) -> Tuple[bool, str]:
    try:
        status = await registry.sequencer_health()
    except UPSTREAM_ERRORS as e:
        return False, f"Sequencer check failed: {e}"

    if not status.healthy:
        return False, f"Sequencer {status.chain} unhealthy (block age {status.block_age})"
    return True, f"Sequencer {status.chain} healthy"


async def check_venue_metadata(registry: RuntimeRegistry) -> Tuple[bool, str]:
    try:
        metadata = await registry.get_venue_metadata()
        ladder = resolve_ladder(metadata)
    except UPSTREAM_ERRORS as e:
        return False, f"Venue metadata invalid: {e}"

    kind = f"{len(ladder)} rungs" if isinstance(ladder, tuple) else f"step {ladder}"
    return True, f"Venue metadata OK: ladder {kind}, max slippage {metadata.max_odds_slippage}"


async def check_payout_limits(registry: RuntimeRegistry) -> Tuple[bool, str]:
    try:
        limits = await registry.get_payout_limits()
    except UPSTREAM_ERRORS as e:
        return False, f"Payout limits unavailable: {e}"

    if not limits.max_payout_usd > 0:
        return False, f"Payout cap not positive: {limits.max_payout_usd}"
    return True, f"Payout limits OK: cap ${limits.max_payout_usd:.2f}"


async def perform_runtime_checks(
    registry: RuntimeRegistry,
    chains: Sequence[str],
    alert_threshold_usd: float = DEFAULT_ALERT_THRESHOLD_USD,
    verbose: bool = True,
) -> Tuple[bool, List[str]]:
    """
    Run all runtime checks.

    Returns:
        Tuple of (all_passed, list_of_issues)
    """
    checks = [
        ("treasury balance", lambda: check_bank_balances(registry, alert_threshold_usd)),
        ("gas prices", lambda: check_gas_prices(registry, chains)),
        ("sequencer", lambda: check_sequencer(registry)),
        ("venue metadata", lambda: check_venue_metadata(registry)),
        ("payout limits", lambda: check_payout_limits(registry)),
    ]

    if verbose:
        print("\n" + "=" * 60)
        print("RUNTIME CHECKS")
        print("=" * 60 + "\n")

    issues: List[str] = []
    for i, (label, check) in enumerate(checks, 1):
        result = await check()
        passed, msg = result[0], result[1]
        if verbose:
            print(f"  [{i}/{len(checks)}] Checking {label}...")
            print(f"        {'OK  ' if passed else 'FAIL'} {msg}")
        if not passed:
            issues.append(msg)

    all_passed = not issues
    if verbose:
        print("\n" + "-" * 60)
        if all_passed:
            print("ALL CHECKS PASSED")
        else:
            print(f"CHECKS FAILED - {len(issues)} issue(s)")
            for i, issue in enumerate(issues, 1):
                print(f"   {i}. {issue}")
        print("=" * 60 + "\n")

    return all_passed, issues
