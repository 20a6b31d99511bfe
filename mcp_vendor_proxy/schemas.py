"""Wire shapes exchanged with the remote orchestrator."""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def empty_input_schema() -> Dict[str, Any]:
    return {"type": "object", "properties": {}}


class ToolDescriptor(BaseModel):
    """A tool advertised by the orchestrator."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    description: Optional[str] = None
    input_schema: Dict[str, Any] = Field(
        default_factory=empty_input_schema, alias="inputSchema"
    )

    @field_validator("input_schema", mode="before")
    @classmethod
    def _null_schema_is_empty(cls, value: Any) -> Any:
        return empty_input_schema() if value is None else value


class VendorInstruction(BaseModel):
    """A local-resource operation delegated back to the proxy.

    ``type`` is kept as a plain string so an unknown value reaches the
    dispatcher and fails there with a routing error instead of a
    validation error.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    type: str
    operation: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    connection_identity: Optional[str] = Field(
        None,
        validation_alias=AliasChoices(
            "connectionIdentity", "connectionString", "connection_identity"
        ),
        serialization_alias="connectionIdentity",
    )


class ResponseEnvelope(BaseModel):
    """Uniform result of every orchestrator call.

    When ``success`` is false only ``error`` is meaningful.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    success: bool
    error: Optional[str] = None
    tools: Optional[List[ToolDescriptor]] = None
    result: Any = None
    # Parsed one by one by the protocol front so a malformed entry only
    # fails its own outcome
    vendor_instructions: Optional[List[Any]] = Field(
        None, alias="vendorInstructions"
    )

    @classmethod
    def failure(cls, error: str) -> "ResponseEnvelope":
        return cls(success=False, error=error)
