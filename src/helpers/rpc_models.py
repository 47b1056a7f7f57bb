"""Pydantic models for JSON-RPC requests and responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.helpers.parsers import parse_hex_int


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request model."""

    jsonrpc: str = Field(default="2.0", description="JSON-RPC version")
    method: str = Field(..., description="Method name to call")
    params: list[Any] = Field(
        default_factory=list, description="Method parameters"
    )
    id: int | str = Field(..., description="Request ID")


class RawLog(BaseModel):
    """Log entry as returned by eth_getLogs."""

    address: str = Field(..., description="Emitting contract address")
    topics: list[str] = Field(..., description="Event signature and indexed args")
    data: str = Field(default="0x", description="ABI-encoded non-indexed args")
    block_number: int = Field(..., alias="blockNumber")
    transaction_hash: str = Field(..., alias="transactionHash")
    log_index: int = Field(..., alias="logIndex")
    removed: bool = Field(default=False)

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @field_validator("block_number", "log_index", mode="before")
    @classmethod
    def _parse_quantity(cls, value: Any) -> Any:
        # Nodes encode quantities as hex strings
        if isinstance(value, str):
            return parse_hex_int(value)
        return value


__all__ = [
    "JsonRpcRequest",
    "RawLog",
]
