"""Pydantic models for Alpaca API responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AlpacaResponse(BaseModel):
    """Envelope returned by every Alpaca device request."""

    model_config = ConfigDict(populate_by_name=True)

    value: Any = Field(default=None, alias="Value")
    client_transaction_id: int = Field(default=0, alias="ClientTransactionID")
    server_transaction_id: int = Field(default=0, alias="ServerTransactionID")
    error_number: int = Field(default=0, alias="ErrorNumber")
    error_message: str = Field(default="", alias="ErrorMessage")
