"""Pydantic models for dispatched command records."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CommandStatus(str, Enum):
    """Lifecycle status of a dispatched command."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class CommandRecordCreate(BaseModel):
    """Input for creating a command record."""

    model_config = ConfigDict(populate_by_name=True)

    bot_id: int = Field(..., alias="botId")
    command_type: str = Field(..., alias="commandType", min_length=1)
    command_data: str = Field(..., alias="commandData", description="Serialized command payload")
    response: Optional[str] = None
    status: CommandStatus = CommandStatus.PENDING

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class CommandRecordUpdate(BaseModel):
    """Partial update of a command record."""

    model_config = ConfigDict(populate_by_name=True)

    bot_id: Optional[int] = Field(None, alias="botId")
    command_type: Optional[str] = Field(None, alias="commandType", min_length=1)
    command_data: Optional[str] = Field(None, alias="commandData")
    response: Optional[str] = None
    status: Optional[CommandStatus] = None

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


class CommandRecord(BaseModel):
    """A command record as stored."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    bot_id: int = Field(..., alias="botId")
    command_type: str = Field(..., alias="commandType")
    command_data: str = Field(..., alias="commandData")
    response: Optional[str] = None
    status: CommandStatus = CommandStatus.PENDING
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    @field_validator('id', mode='before')
    @classmethod
    def stringify_id(cls, v: Any) -> str:
        return str(v)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "CommandRecord":
        return cls.model_validate(document)


class DispatchResult(BaseModel):
    """Normalized outcome of a dispatched command, as returned to the caller."""

    success: bool
    command_type: str
    record_id: Optional[str] = None
    status: CommandStatus = CommandStatus.FAILED
    status_code: Optional[int] = Field(None, description="Relay HTTP status, when one was received")
    response_text: Optional[str] = Field(None, description="Serialized relay response body")
    error: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)

    def to_text(self) -> str:
        """Caller-facing text for the MCP tool result."""
        if self.success:
            return self.response_text if self.response_text is not None else ""
        return f"Command '{self.command_type}' failed: {self.error}"
