"""
app/models/directory.py

Purpose: Company and role records from the master-data backend

- Parsed from the backend's camelCase JSON
- A role belongs to exactly one company
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RecordStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class Company(BaseModel):
    """
    Company master record.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    code: str = Field(default="", alias="companyCode")
    name: str = Field(alias="companyName")
    status: RecordStatus = RecordStatus.ACTIVE


class Role(BaseModel):
    """
    Role owned by a single company.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(alias="roleId")
    name: str = Field(alias="roleName")
    description: Optional[str] = Field(default=None, alias="roleDescription")
    company_id: str = Field(alias="companyId")
    status: RecordStatus = RecordStatus.ACTIVE
