from pydantic import BaseModel
from typing import Optional, Any, List


class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    error: str
    code: str
    details: Optional[Any] = None


class Notice(BaseModel):
    """
    Non-blocking message shown alongside a successful read.
    """
    message: str
    entity: str
    reference: Optional[str] = None


def notices_from(warnings) -> List[Notice]:
    return [
        Notice(message=w.message, entity=w.entity, reference=w.reference)
        for w in warnings
    ]
