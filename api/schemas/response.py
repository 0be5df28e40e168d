# WORKFLOW: Pydantic response schemas for the prices API.
# Used by: Prices router, health router, testing
# Schemas include:
# 1. PriceTotals - Aggregates returned after a successful import
# 2. HealthStatus / ReadinessStatus - Probe payloads
#
# Response flow: Aggregate query -> Pydantic model -> JSON response

from pydantic import BaseModel, Field
from typing import Dict, Optional


class PriceTotals(BaseModel):
    """Aggregates over the whole prices table."""
    total_items: int = Field(..., ge=0, description="Number of stored records")
    total_categories: int = Field(..., ge=0, description="Number of distinct categories")
    total_price: float = Field(..., description="Sum of all stored prices")


class HealthStatus(BaseModel):
    status: str
    timestamp: str
    version: Optional[str] = None
    environment: Optional[str] = None


class ReadinessStatus(BaseModel):
    status: str
    timestamp: str
    checks: Dict[str, bool]
    version: str
