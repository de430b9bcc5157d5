"""
Analytics routes.

Read-only views over the active provider's in-memory request ledger.
"""

from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from github_reviewer.models import ModelCostSummary, UsageAnalytics
from github_reviewer.providers.ledger import as_utc

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/usage", response_model=UsageAnalytics)
async def usage(
    request: Request,
    start: Optional[datetime] = Query(None, description="Inclusive lower bound (ISO 8601)"),
    end: Optional[datetime] = Query(None, description="Inclusive upper bound (ISO 8601)")
) -> UsageAnalytics:
    """Aggregate usage over ledger records within ``[start, end]``."""
    if start is not None and end is not None and as_utc(start) > as_utc(end):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start must not be after end"
        )
    return request.app.state.provider.get_usage_analytics(start, end)


@router.get("/costs", response_model=Dict[str, ModelCostSummary])
async def costs(request: Request) -> Dict[str, ModelCostSummary]:
    """Requests, tokens and cost per model."""
    return request.app.state.provider.get_cost_breakdown()
