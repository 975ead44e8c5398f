"""
Correspondence — Data Models

A template is a named letter (welcome, rent reminder, ...) whose subject and
body carry ``{{variable}}`` placeholders. The set of variables is derived from
the body every time it is read, never stored on its own.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


class TemplateType(str, Enum):
    WELCOME = "welcome"
    RENT_REMINDER = "rent_reminder"
    EVICTION_NOTICE = "eviction_notice"
    MAINTENANCE_REQUEST = "maintenance_request"
    LEASE_RENEWAL = "lease_renewal"
    CUSTOM = "custom"


class CorrespondenceTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, max_length=100)
    type: TemplateType = Field(default=TemplateType.CUSTOM)
    subject: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=5000)

    @computed_field
    @property
    def variables(self) -> List[str]:
        from correspondence.renderer import extract_variables
        return extract_variables(self.content)


class TenantRecord(BaseModel):
    """The tenant/lease fields a letter can draw on. All optional."""
    name: Optional[str] = None
    property_name: Optional[str] = None
    rent: Optional[float] = None
    lease_start: Optional[str] = None
    lease_end: Optional[str] = None
    property_address: Optional[str] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None


class RenderedCorrespondence(BaseModel):
    template_name: str
    subject: str
    content: str
    unresolved_variables: List[str] = Field(
        default_factory=list,
        description="Placeholders left literal because no resolver exists for them"
    )
