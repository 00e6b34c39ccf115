"""Static MCP tool catalog and per-tool argument models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

CQ_QUERY = "cq_query"
CQ_DECODE_ADDRESS = "cq_decode_address"
CQ_VALIDATE = "cq_validate"

_HEX_INPUT_DESCRIPTION = "Transaction CBOR as hex string (with or without 0x prefix)"


class ToolInputSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = "object"
    properties: dict[str, dict[str, Any]]
    required: list[str] = Field(default_factory=list)


class ToolDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str
    input_schema: ToolInputSchema = Field(alias="inputSchema")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


MCP_TOOLS: tuple[ToolDescriptor, ...] = (
    ToolDescriptor(
        name=CQ_QUERY,
        description="Query a Cardano CBOR transaction with optional query path",
        input_schema=ToolInputSchema(
            properties={
                "input": {"type": "string", "description": _HEX_INPUT_DESCRIPTION},
                "query": {
                    "type": "string",
                    "description": 'Optional query path (e.g., "fee", "outputs.0.address", "outputs.*.value")',
                },
                "format": {
                    "type": "string",
                    "enum": ["json", "raw", "pretty"],
                    "description": "Output format",
                },
                "ada": {"type": "boolean", "description": "Display ADA amounts instead of lovelace"},
            },
            required=["input"],
        ),
    ),
    ToolDescriptor(
        name=CQ_DECODE_ADDRESS,
        description="Decode a Cardano bech32 address",
        input_schema=ToolInputSchema(
            properties={
                "address": {
                    "type": "string",
                    "description": "Cardano address in bech32 format (e.g., addr1..., stake1...)",
                },
            },
            required=["address"],
        ),
    ),
    ToolDescriptor(
        name=CQ_VALIDATE,
        description="Validate a Cardano CBOR transaction",
        input_schema=ToolInputSchema(
            properties={"input": {"type": "string", "description": _HEX_INPUT_DESCRIPTION}},
            required=["input"],
        ),
    ),
)


def list_tool_payloads() -> list[dict[str, Any]]:
    """Catalog as plain JSON-ready dicts (fresh copies on every call)."""
    return [tool.to_payload() for tool in MCP_TOOLS]


def find_tool(name: str) -> ToolDescriptor | None:
    for tool in MCP_TOOLS:
        if tool.name == name:
            return tool
    return None


class CqQueryArguments(BaseModel):
    input: str = Field(min_length=1)
    query: str | None = None
    format: Literal["json", "raw", "pretty"] | None = None
    ada: bool = False


class CqDecodeAddressArguments(BaseModel):
    address: str = Field(min_length=1)


class CqValidateArguments(BaseModel):
    input: str = Field(min_length=1)


TOOL_ARGUMENT_MODELS: dict[str, type[BaseModel]] = {
    CQ_QUERY: CqQueryArguments,
    CQ_DECODE_ADDRESS: CqDecodeAddressArguments,
    CQ_VALIDATE: CqValidateArguments,
}
