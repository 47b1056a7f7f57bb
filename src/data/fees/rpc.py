"""Chain reader for FeeCollector FeesCollected events."""

from __future__ import annotations

from typing import TYPE_CHECKING

from eth_utils import encode_hex, keccak

from src.data.fees.models import FeeCollectedEvent
from src.helpers.logging import get_logger
from src.helpers.parsers import split_words, word_to_address, word_to_uint
from src.helpers.rpc import RPCClient, create_http_client


if TYPE_CHECKING:
    from collections.abc import Sequence

    import httpx

    from src.helpers.rpc_models import RawLog


logger = get_logger(__name__)

FEES_COLLECTED_SIGNATURE = "FeesCollected(address,address,uint256,uint256)"
FEES_COLLECTED_TOPIC = encode_hex(keccak(text=FEES_COLLECTED_SIGNATURE))
"""topic0 of event FeesCollected(address indexed _token, address indexed
_integrator, uint256 _integratorFee, uint256 _lifiFee)"""


class ChainMismatchError(ValueError):
    """The RPC endpoint serves a different chain than configured."""


class ContractNotDeployedError(ValueError):
    """No bytecode at the configured fee collector address."""


class FeeCollectorReader:
    """Loads and decodes FeesCollected logs of one fee collector contract."""

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the reader.

        Args:
            rpc_url: JSON-RPC endpoint of the chain
            contract_address: FeeCollector contract address
            client: Shared HTTP client; a new one is created when omitted

        Raises:
            ValueError: If rpc_url or contract_address is empty
        """
        if not contract_address:
            msg = "Contract address cannot be empty"
            raise ValueError(msg)

        self.rpc = RPCClient(rpc_url)
        self.contract_address = contract_address
        self.client = client or create_http_client()

    async def load_events(self, from_block: int, to_block: int) -> list[RawLog]:
        """Fetch raw FeesCollected logs for an inclusive block range."""
        logs = await self.rpc.get_logs(
            self.client,
            self.contract_address,
            [FEES_COLLECTED_TOPIC],
            from_block,
            to_block,
        )
        # Logs dropped by a reorg are flagged by the node; they are not events
        return [log for log in logs if not log.removed]

    def decode_events(self, logs: Sequence[RawLog]) -> list[FeeCollectedEvent]:
        """Decode raw logs into fee events.

        token and integrator are indexed and read from the topics; the two fee
        amounts are the data words. Logs carrying all four arguments in data
        are decoded as well.

        Raises:
            ValueError: If a log is not a FeesCollected log or is malformed
        """
        return [self._decode(log) for log in logs]

    def _decode(self, log: RawLog) -> FeeCollectedEvent:
        if not log.topics or log.topics[0].lower() != FEES_COLLECTED_TOPIC:
            msg = f"Log {log.transaction_hash}:{log.log_index} is not FeesCollected"
            raise ValueError(msg)

        words = split_words(log.data)
        indexed = log.topics[1:]

        if len(indexed) == 2 and len(words) == 2:
            token, integrator = indexed
            integrator_fee, lifi_fee = words
        elif not indexed and len(words) == 4:
            token, integrator, integrator_fee, lifi_fee = words
        else:
            msg = (
                f"Unexpected FeesCollected layout in {log.transaction_hash}:"
                f"{log.log_index} ({len(indexed)} topics, {len(words)} words)"
            )
            raise ValueError(msg)

        return FeeCollectedEvent(
            transaction_hash=log.transaction_hash,
            log_index=log.log_index,
            block_number=log.block_number,
            token=word_to_address(token),
            integrator=word_to_address(integrator),
            integrator_fee=word_to_uint(integrator_fee),
            lifi_fee=word_to_uint(lifi_fee),
        )

    async def get_chain_tip(self) -> int:
        """Latest block number of the chain."""
        return await self.rpc.get_block_number(self.client)

    async def verify_reachable(self, expected_chain_id: int) -> None:
        """Check the endpoint serves the expected chain and the contract exists.

        Raises:
            ChainMismatchError: If eth_chainId differs from expected_chain_id
            ContractNotDeployedError: If there is no code at the contract address
            httpx.HTTPError: If the endpoint cannot be reached
        """
        chain_id = await self.rpc.get_chain_id(self.client)
        if chain_id != expected_chain_id:
            msg = f"Wrong RPC chain id: expected {expected_chain_id}, got {chain_id}"
            raise ChainMismatchError(msg)

        tip = await self.get_chain_tip()
        code = await self.rpc.get_code(self.client, self.contract_address)
        if code in {"", "0x"}:
            msg = f"No contract deployed at {self.contract_address} on chain {chain_id}"
            raise ContractNotDeployedError(msg)

        logger.info(
            "RPC reachable: chain %s at block %s, fee collector %s",
            chain_id,
            tip,
            self.contract_address,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()


__all__ = [
    "FEES_COLLECTED_TOPIC",
    "ChainMismatchError",
    "ContractNotDeployedError",
    "FeeCollectorReader",
]
