"""
app/models/session.py

Purpose: Authenticated operator session

- Built from request headers by the API layer
- Passed explicitly into the resolver and activation services
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class OperatorSession:
    """
    What the console knows about the signed-in operator.

    The bearer token is forwarded to the backend; nothing here is verified
    locally.
    """
    token: str = field(repr=False)
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    email: Optional[str] = None
    roles: List[str] = field(default_factory=list)
    company_id: Optional[str] = None
    company_name: Optional[str] = None
