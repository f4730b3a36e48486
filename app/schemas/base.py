"""Base schemas for the application."""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema class with common configuration."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ErrorResponse(BaseSchema):
    """Error body rendered by the global exception handlers."""
    error: str
    status: str = "error"
    message: str
    error_code: str
    details: dict | list | None = None
    timestamp: str
    request_id: str | None = None
