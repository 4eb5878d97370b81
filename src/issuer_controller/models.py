"""Response models for the controller HTTP endpoints."""

from typing import Dict, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(..., description="Service status")
    controllers: Dict[str, int] = Field(default_factory=dict, description="Queued keys per controller")
    timestamp: datetime = Field(..., description="Current server time")


class EnqueueResponse(BaseModel):
    """Response model for reconcile requests."""

    controller: str = Field(..., description="Controller that will reconcile the object")
    namespace: Optional[str] = Field(None, description="Object namespace")
    name: str = Field(..., description="Object name")
    queued: bool = Field(default=True, description="Whether the key was queued")

