"""
Entity base classes shared by every persisted record.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


class DomainEntity(SQLModel):
    """Base for all persisted records; concrete entities subclass with table=True."""

    id: Optional[int] = Field(default=None, primary_key=True)


class AuditedEntity(DomainEntity):
    """Entity with audit timestamps, stamped by GenericRepository.commit()."""

    created_on: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),
        description="Set (UTC) when first committed",
    )
    updated_on: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),
        description="Set (UTC) on every committed modification",
    )
