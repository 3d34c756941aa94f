# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base entity models with common fields and validation.
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from bson import ObjectId


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class BaseEntity(BaseModel):
    """Base entity with common fields for all stored documents."""
    
    model_config = ConfigDict(
        # Wire and storage format is camelCase, python attributes are snake_case
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
        validate_assignment=True
    )
    
    id: Optional[str] = Field(None, description="Store-assigned identifier")
    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utc_now, description="Last update timestamp")
    schema_version: int = Field(default=1, description="Schema version for migrations")
    
    def is_stored(self) -> bool:
        """Check if the store has assigned an identifier."""
        return self.id is not None


class BaseRequest(BaseModel):
    """Base model for inbound request bodies."""
    
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True
    )
