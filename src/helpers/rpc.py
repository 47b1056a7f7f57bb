"""Ethereum JSON-RPC client utilities."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from src.helpers.constants import DEFAULT_TIMEOUT
from src.helpers.parsers import parse_hex_int
from src.helpers.rpc_models import JsonRpcRequest, RawLog


if TYPE_CHECKING:
    from collections.abc import Sequence


def create_http_client(
    timeout: float = DEFAULT_TIMEOUT, **kwargs: Any
) -> httpx.AsyncClient:
    """Create a configured httpx AsyncClient.

    Args:
        timeout: Default timeout in seconds (default: DEFAULT_TIMEOUT)
        **kwargs: Additional httpx.AsyncClient kwargs

    Returns:
        Configured AsyncClient instance
    """
    return httpx.AsyncClient(timeout=timeout, **kwargs)


class RPCClient:
    """Ethereum JSON-RPC client."""

    def __init__(self, rpc_url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize RPC client.

        Args:
            rpc_url: Ethereum JSON-RPC endpoint URL
            timeout: Default timeout for requests in seconds

        Raises:
            ValueError: If rpc_url is empty or None
        """
        if not rpc_url:
            msg = "RPC URL cannot be empty"
            raise ValueError(msg)

        self.rpc_url = rpc_url
        self.timeout = timeout

    async def call(
        self,
        client: httpx.AsyncClient,
        method: str,
        params: list[Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Make a single JSON-RPC call.

        Args:
            client: HTTP client instance
            method: RPC method name (e.g., "eth_blockNumber")
            params: Method parameters list
            timeout: Optional timeout override

        Returns:
            RPC result value

        Raises:
            httpx.HTTPError: If the HTTP request fails
            ValueError: If the RPC response contains an error
        """
        payload = JsonRpcRequest(method=method, params=params or [], id=1)

        response = await client.post(
            self.rpc_url,
            json=payload.model_dump(),
            timeout=timeout or self.timeout,
        )
        response.raise_for_status()
        result = response.json()

        if "error" in result:
            msg = f"RPC error: {result['error']}"
            raise ValueError(msg)

        return result.get("result")

    async def get_block_number(self, client: httpx.AsyncClient) -> int:
        """Get the latest block number.

        Args:
            client: HTTP client instance

        Returns:
            Latest block number
        """
        result = await self.call(client, "eth_blockNumber", [])
        return parse_hex_int(result) if result else 0

    async def get_chain_id(self, client: httpx.AsyncClient) -> int:
        """Get the chain id reported by the endpoint.

        Raises:
            ValueError: If the endpoint returns no chain id
        """
        result = await self.call(client, "eth_chainId", [])
        if not result:
            msg = "RPC endpoint returned no chain id"
            raise ValueError(msg)
        return parse_hex_int(result)

    async def get_code(
        self,
        client: httpx.AsyncClient,
        address: str,
        block_number: int | str = "latest",
    ) -> str:
        """Get the deployed bytecode at an address.

        Returns:
            Hex-encoded bytecode, "0x" when nothing is deployed
        """
        block_param = (
            hex(block_number) if isinstance(block_number, int) else block_number
        )
        result = await self.call(client, "eth_getCode", [address, block_param])
        return result or "0x"

    async def get_logs(
        self,
        client: httpx.AsyncClient,
        address: str,
        topics: Sequence[str | None],
        from_block: int,
        to_block: int,
    ) -> list[RawLog]:
        """Fetch logs emitted by a contract in an inclusive block range.

        Args:
            client: HTTP client instance
            address: Contract address
            topics: Topic filter, topic0 first
            from_block: First block of the range
            to_block: Last block of the range (inclusive)

        Returns:
            Parsed logs in node order

        Example:
            ```python
            rpc = RPCClient(rpc_url)
            async with create_http_client() as client:
                logs = await rpc.get_logs(client, address, [topic0], 100, 199)
            ```
        """
        result = await self.call(
            client,
            "eth_getLogs",
            [
                {
                    "address": address,
                    "topics": list(topics),
                    "fromBlock": hex(from_block),
                    "toBlock": hex(to_block),
                }
            ],
        )
        return [RawLog.model_validate(entry) for entry in result or []]


__all__ = [
    "RPCClient",
    "create_http_client",
]
