"""
app/models/reference.py

Purpose: Tagged references to companies and roles

- ById carries a backend-assigned canonical id
- ByName carries a human-readable display name
- The kind is decided once where a value enters the system
  (API request, backend record) and never re-inferred downstream
- Conversion to and from the stored session document form
"""

from dataclasses import dataclass
from typing import Optional, Union, Dict


@dataclass(frozen=True)
class ById:
    """Reference by canonical id."""
    id: str

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class ByName:
    """Reference by display name."""
    name: str

    def __str__(self) -> str:
        return self.name


Reference = Union[ById, ByName]

KIND_ID = "id"
KIND_NAME = "name"


def make_reference(kind: str, value: str) -> Reference:
    """
    Builds a reference from an explicit kind tag.

    Args:
        kind: "id" or "name"
        value: Canonical id or display name

    Returns:
        ById or ByName

    Raises:
        ValueError: If kind is unknown or value is blank
    """
    if value is None or not str(value).strip():
        raise ValueError("Reference value must not be blank")

    value = str(value).strip()
    if kind == KIND_ID:
        return ById(value)
    if kind == KIND_NAME:
        return ByName(value)
    raise ValueError(f"Unknown reference kind: {kind}")


def reference_to_document(ref: Optional[Reference]) -> Optional[Dict[str, str]]:
    if ref is None:
        return None
    if isinstance(ref, ById):
        return {"kind": KIND_ID, "value": ref.id}
    return {"kind": KIND_NAME, "value": ref.name}


def reference_from_document(doc: Optional[Dict[str, str]]) -> Optional[Reference]:
    if not doc:
        return None
    return make_reference(doc["kind"], doc["value"])
