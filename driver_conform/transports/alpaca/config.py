"""Configuration for the Alpaca transport."""

from pydantic import BaseModel, Field


class AlpacaConfig(BaseModel):
    """Configuration for the Alpaca transport."""

    base_url: str = "http://localhost:11111"
    device_type: str
    device_number: int = Field(default=0, ge=0)
    client_id: int = Field(default=1, ge=0)
    # Seconds allowed for a single request, not for the operation it starts
    timeout: float = Field(default=10.0, gt=0)
