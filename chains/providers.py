"""
chains/providers.py - JSON-RPC provider management with failover.

Provides reliable RPC access with:
- Multiple endpoint failover
- Request timeout handling
- Connection pooling
- Latency tracking
"""

import os
from dataclasses import dataclass
from typing import Any

import httpx

from core.constants import DEFAULT_RPC_TIMEOUT_SECONDS, ErrorCode
from core.exceptions import InfraError
from core.logging import get_logger
from core.time import elapsed_ms, monotonic, now_ms

logger = get_logger(__name__)


@dataclass
class RPCStats:
    """Statistics for an RPC endpoint."""
    url: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_latency_ms: int = 0
    last_error: str | None = None
    last_success_ts: int | None = None

    @property
    def avg_latency_ms(self) -> int:
        if self.successful_requests == 0:
            return 0
        return self.total_latency_ms // self.successful_requests

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests


@dataclass
class RPCResponse:
    """Response from an RPC call."""
    result: Any
    latency_ms: int
    endpoint_used: str

    def as_int(self, method: str) -> int:
        """
        Hex quantity result as int.

        Raises:
            InfraError: if the node returned something else
        """
        try:
            return int(self.result, 16)
        except (TypeError, ValueError) as e:
            raise InfraError(
                f"Malformed {method} result: {self.result!r:.100}",
                details={"method": method, "url": self.endpoint_used},
            ) from e


class RPCProvider:
    """
    RPC provider with failover support.

    Tries multiple endpoints in order until one succeeds.
    Tracks statistics per endpoint for monitoring.

    A JSON-RPC error object means the node understood and refused the
    request. With failover=False such refusals are raised immediately
    instead of being retried on the next endpoint.
    """

    def __init__(
        self,
        chain_id: int,
        rpc_urls: list[str],
        timeout_seconds: int = DEFAULT_RPC_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ):
        self.chain_id = chain_id
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._request_id = 0

        self.rpc_urls = self._resolve_urls(rpc_urls)

        self.stats: dict[str, RPCStats] = {
            url: RPCStats(url=url) for url in self.rpc_urls
        }

    def _resolve_urls(self, urls: list[str]) -> list[str]:
        """Resolve ${VAR} placeholders in URLs from the environment."""
        resolved = []
        for url in urls:
            resolved_url = os.path.expandvars(url)
            if "${" in resolved_url:
                logger.warning(
                    "Skipping RPC endpoint with unresolved placeholder",
                    extra={"context": {"url": url}},
                )
                continue
            resolved.append(resolved_url)
        return resolved

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                limits=httpx.Limits(max_connections=10),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _next_request_id(self) -> int:
        """Generate next request ID."""
        self._request_id += 1
        return self._request_id

    async def call(
        self,
        method: str,
        params: list | None = None,
        failover: bool = True,
    ) -> RPCResponse:
        """
        Make an RPC call with failover.

        Args:
            method: RPC method name
            params: Method parameters
            failover: Retry JSON-RPC error responses on the next endpoint

        Returns:
            RPCResponse with result and metadata

        Raises:
            InfraError: If all endpoints fail, or the node refuses the
                request and failover is disabled
        """
        if not self.rpc_urls:
            raise InfraError(
                "No RPC endpoints configured",
                details={"chain_id": self.chain_id},
            )

        client = await self._get_client()
        last_error: Exception | None = None

        for url in self.rpc_urls:
            stats = self.stats[url]
            stats.total_requests += 1

            payload = {
                "jsonrpc": "2.0",
                "method": method,
                "params": params or [],
                "id": self._next_request_id(),
            }

            start = monotonic()

            try:
                resp = await client.post(url, json=payload)
                latency_ms = elapsed_ms(start)

                result = resp.json()
                if not isinstance(result, dict):
                    raise ValueError(f"Unexpected RPC payload: {result!r:.200}")

                if "error" in result:
                    error = result["error"]
                    error_msg = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                    stats.failed_requests += 1
                    stats.last_error = error_msg
                    last_error = InfraError(
                        f"RPC error: {error_msg}",
                        details={"url": url, "method": method, "rpc_error": error},
                    )
                    logger.debug(f"RPC error from {url}: {error_msg}")
                    if not failover:
                        raise last_error
                    continue

                # A JSON-RPC error body is a node refusal whatever the status;
                # anything else must be a 2xx carrying a result
                resp.raise_for_status()
                if "result" not in result:
                    raise ValueError(f"RPC response without result: {result!r:.200}")

                stats.successful_requests += 1
                stats.total_latency_ms += latency_ms
                stats.last_success_ts = now_ms()

                return RPCResponse(
                    result=result["result"],
                    latency_ms=latency_ms,
                    endpoint_used=url,
                )

            except InfraError:
                raise

            except httpx.TimeoutException as e:
                latency_ms = elapsed_ms(start)
                stats.failed_requests += 1
                stats.last_error = f"Timeout after {latency_ms}ms"
                last_error = e
                logger.debug(f"RPC timeout for {url}: {latency_ms}ms")
                continue

            except (httpx.HTTPError, ValueError) as e:
                stats.failed_requests += 1
                stats.last_error = str(e)
                last_error = e
                logger.debug(f"RPC failed for {url}: {e}")
                continue

        code = (
            ErrorCode.INFRA_TIMEOUT
            if isinstance(last_error, httpx.TimeoutException)
            else ErrorCode.INFRA_RPC_ERROR
        )
        raise InfraError(
            f"All RPC endpoints failed for chain {self.chain_id}",
            code=code,
            details={
                "chain_id": self.chain_id,
                "method": method,
                "endpoints_tried": len(self.rpc_urls),
                "last_error": str(last_error),
            },
        )

    async def get_chain_id(self) -> int:
        """Get chain ID from RPC."""
        response = await self.call("eth_chainId")
        return response.as_int("eth_chainId")

    async def get_block_number(self) -> tuple[int, int]:
        """
        Get latest block number.

        Returns:
            (block_number, latency_ms)
        """
        response = await self.call("eth_blockNumber")
        return response.as_int("eth_blockNumber"), response.latency_ms

    async def get_logs(
        self,
        from_block: int,
        to_block: int,
        topics: list,
        address: str | list[str] | None = None,
    ) -> list[dict]:
        """eth_getLogs for an inclusive block range."""
        log_filter: dict[str, Any] = {
            "fromBlock": hex(from_block),
            "toBlock": hex(to_block),
            "topics": topics,
        }
        if address:
            log_filter["address"] = address
        response = await self.call("eth_getLogs", [log_filter])
        return response.result or []

    async def eth_call(
        self,
        to: str,
        data: str,
        block: str = "latest",
    ) -> RPCResponse:
        """
        Make eth_call.

        Args:
            to: Contract address
            data: Encoded call data
            block: Block number or "latest"
        """
        return await self.call(
            "eth_call",
            [{"to": to, "data": data}, block],
        )

    async def get_gas_price(self) -> tuple[int, int]:
        """
        Get current gas price in wei.

        Returns:
            (gas_price_wei, latency_ms)
        """
        response = await self.call("eth_gasPrice")
        return response.as_int("eth_gasPrice"), response.latency_ms

    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        """Nonce for address."""
        response = await self.call("eth_getTransactionCount", [address, block])
        return response.as_int("eth_getTransactionCount")

    async def get_balance(self, address: str, block: str = "latest") -> int:
        """Native balance in wei."""
        response = await self.call("eth_getBalance", [address, block])
        return response.as_int("eth_getBalance")

    async def send_raw_transaction(self, raw_tx_hex: str) -> str:
        """
        Submit a signed transaction. Node refusals are not retried.

        Returns:
            Transaction hash
        """
        response = await self.call("eth_sendRawTransaction", [raw_tx_hex], failover=False)
        return response.result

    async def get_transaction_receipt(self, tx_hash: str) -> dict | None:
        """Receipt, or None while the transaction is pending."""
        response = await self.call("eth_getTransactionReceipt", [tx_hash])
        return response.result

    def get_stats_summary(self) -> dict:
        """Get statistics summary for all endpoints."""
        return {
            url: {
                "total_requests": s.total_requests,
                "success_rate": round(s.success_rate, 3),
                "avg_latency_ms": s.avg_latency_ms,
                "last_error": s.last_error,
            }
            for url, s in self.stats.items()
        }
