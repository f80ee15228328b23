"""
JSON-RPC Snapshot Fetchers
Chain-level facts for the runtime registry: gas price, treasury balance,
sequencer liveness. Failures propagate; there is no fallback value.
"""
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

import httpx
import structlog

from execution_layer.errors import ConfigurationError, InvalidResponseError
from execution_layer.snapshots import BankSnapshot, GasSnapshot, SequencerStatus

log = structlog.get_logger()

ERC20_BALANCE_OF = "0x70a08231"


def _hex_to_int(value: Any, field: str) -> int:
    if not isinstance(value, str) or not value.startswith("0x"):
        raise InvalidResponseError("expected hex quantity", field=field, value=value)
    if value == "0x":
        return 0
    try:
        return int(value, 16)
    except ValueError:
        raise InvalidResponseError("expected hex quantity", field=field, value=value) from None


class JsonRpcClient:
    """Minimal async JSON-RPC 2.0 client over httpx."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._next_id = 0

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        self._next_id += 1
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": self._next_id,
        }
        client = await self._get_client()
        resp = await client.post(self.url, json=payload)
        if resp.status_code != 200:
            raise InvalidResponseError(
                "rpc request failed", method=method, url=self.url, status=resp.status_code
            )

        try:
            data = resp.json()
        except ValueError:
            raise InvalidResponseError("rpc response is not json", method=method, url=self.url) from None

        if not isinstance(data, dict):
            raise InvalidResponseError("rpc response is not an object", method=method, url=self.url)
        if data.get("error"):
            raise InvalidResponseError(
                "rpc error", method=method, url=self.url, error=data["error"]
            )
        if "result" not in data:
            raise InvalidResponseError("rpc response missing result", method=method, url=self.url)
        return data["result"]

    async def close(self):
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()


class _RpcPool:
    """One JsonRpcClient per chain."""

    def __init__(
        self,
        rpc_urls: Mapping[str, str],
        timeout: float,
        transport: Optional[httpx.AsyncBaseTransport],
    ):
        self._clients: Dict[str, JsonRpcClient] = {
            chain: JsonRpcClient(url, timeout=timeout, transport=transport)
            for chain, url in rpc_urls.items()
        }

    @property
    def chains(self) -> List[str]:
        return list(self._clients)

    def client(self, chain: str) -> JsonRpcClient:
        try:
            return self._clients[chain]
        except KeyError:
            raise ConfigurationError("no rpc url configured for chain", chain=chain) from None

    async def close(self):
        for client in self._clients.values():
            await client.close()


class GasPriceFetcher:
    """``await fetcher(chain)`` -> GasSnapshot via eth_gasPrice."""

    def __init__(
        self,
        rpc_urls: Mapping[str, str],
        timeout: float = 5.0,
        clock: Callable[[], float] = time.time,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._pool = _RpcPool(rpc_urls, timeout, transport)
        self._clock = clock

    async def __call__(self, chain: str) -> GasSnapshot:
        result = await self._pool.client(chain).call("eth_gasPrice")
        gas_gwei = _hex_to_int(result, "gas_price") / 1e9
        log.debug("gas_price_fetched", chain=chain, gwei=gas_gwei)
        return GasSnapshot(chain=chain, price_gwei=gas_gwei, fetched_at=self._clock())

    async def close(self):
        await self._pool.close()


class BankBalanceFetcher:
    """
    Treasury balance: stablecoin ``balanceOf(wallet)`` on every chain.

    ``tokens`` maps chain -> stablecoin contract; balances are valued 1:1
    in USD after scaling by ``decimals``.
    """

    def __init__(
        self,
        wallet_address: str,
        rpc_urls: Mapping[str, str],
        tokens: Mapping[str, str],
        decimals: int = 6,
        timeout: float = 5.0,
        clock: Callable[[], float] = time.time,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not wallet_address or not wallet_address.startswith("0x"):
            raise ConfigurationError("wallet address required for bank balance", wallet=wallet_address)
        missing = [chain for chain in tokens if chain not in rpc_urls]
        if missing:
            raise ConfigurationError("token configured for chain without rpc url", chains=missing)
        self.wallet_address = wallet_address
        self._tokens = dict(tokens)
        self._scale = 10 ** decimals
        self._pool = _RpcPool({c: rpc_urls[c] for c in self._tokens}, timeout, transport)
        self._clock = clock

    def _balance_of_calldata(self) -> str:
        return f"{ERC20_BALANCE_OF}{self.wallet_address[2:].lower().rjust(64, '0')}"

    async def __call__(self) -> BankSnapshot:
        data = self._balance_of_calldata()
        per_chain: Dict[str, float] = {}
        for chain, token in self._tokens.items():
            result = await self._pool.client(chain).call(
                "eth_call", [{"to": token, "data": data}, "latest"]
            )
            per_chain[chain] = _hex_to_int(result, f"balance:{chain}") / self._scale

        total = sum(per_chain.values())
        log.debug("bank_balance_fetched", total_usd=total, chains=len(per_chain))
        return BankSnapshot(total_usd=total, per_chain_usd=per_chain, fetched_at=self._clock())

    async def close(self):
        await self._pool.close()


class SequencerHealthFetcher:
    """Healthy iff the latest block is younger than ``max_block_age`` seconds."""

    def __init__(
        self,
        chain: str,
        rpc_url: str,
        max_block_age: float = 60.0,
        timeout: float = 5.0,
        clock: Callable[[], float] = time.time,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.chain = chain
        self.max_block_age = max_block_age
        self._rpc = JsonRpcClient(rpc_url, timeout=timeout, transport=transport)
        self._clock = clock

    async def __call__(self) -> SequencerStatus:
        block = await self._rpc.call("eth_getBlockByNumber", ["latest", False])
        if not isinstance(block, dict):
            raise InvalidResponseError("latest block missing", chain=self.chain)
        block_time = _hex_to_int(block.get("timestamp"), "block_timestamp")

        now = self._clock()
        block_age = max(0.0, now - block_time)
        healthy = block_age <= self.max_block_age
        if not healthy:
            log.warning("sequencer_lagging", chain=self.chain, block_age=block_age)
        return SequencerStatus(
            chain=self.chain, healthy=healthy, checked_at=now, block_age=block_age
        )

    async def close(self):
        await self._rpc.close()
