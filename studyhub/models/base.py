from pydantic import BaseModel, ConfigDict


class BaseModelSchema(BaseModel):
    """Base Pydantic model for request schemas."""
    
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class BaseCreateSchema(BaseModelSchema):
    """Base schema for create operations."""
    pass


class BaseUpdateSchema(BaseModelSchema):
    """Base schema for update operations - all fields optional."""

    def changes(self) -> dict:
        """Fields the caller actually sent, ready to use as a store patch."""
        return self.model_dump(exclude_unset=True, mode="json")


class BaseRecordSchema(BaseModel):
    """Immutable snapshot of a persisted row.

    Unknown columns are ignored so joined or newer rows still parse.
    """

    model_config = ConfigDict(
        from_attributes=True,
        extra="ignore",
        frozen=True,
    )
