"""
Helpers shared by the route modules.
"""

from typing import Any, Optional

from fastapi import HTTPException
from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from food_delivery.models import OrderStatus
from food_delivery.workflow import (
    ConcurrentUpdateError,
    InvalidTransitionError,
    OrderNotFoundError,
    WorkflowError,
)


def workflow_http_error(exc: WorkflowError) -> HTTPException:
    """Map a lifecycle failure to the HTTP error the client sees."""
    if isinstance(exc, OrderNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (InvalidTransitionError, ConcurrentUpdateError)):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def parse_statuses(raw: Optional[str]) -> Optional[list[OrderStatus]]:
    """Parse a comma-separated status filter, rejecting unknown values."""
    if not raw:
        return None
    statuses = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            statuses.append(OrderStatus(part))
        except ValueError:
            raise HTTPException(
                status_code=422,
                detail=f"Invalid status '{part}'. Options: {[s.value for s in OrderStatus]}"
            )
    return statuses or None


def camelize(data: dict[str, Any]) -> dict[str, Any]:
    return {to_camel(key): value for key, value in data.items()}


def changes(model: BaseModel, *exclude: str) -> dict[str, Any]:
    """Fields the client actually sent, as model attribute names."""
    return model.model_dump(exclude_unset=True, exclude=set(exclude))


def dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json")
