"""
Error response models for the resource framework.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Standard error response model.

    This is the body the default error reporter writes for every dispatch
    failure. It includes an error message, the failing parameter when there
    is one, and optional validation details.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Invalid value for query parameter 'limit'",
                "parameter": "limit",
                "details": [
                    {
                        "type": "int_parsing",
                        "loc": [],
                        "msg": "Input should be a valid integer",
                        "input": "ten"
                    }
                ]
            }
        }
    )

    error: str = Field(
        ...,
        description="Human-readable error message describing what went wrong"
    )

    parameter: Optional[str] = Field(
        None,
        description="Name of the parameter that could not be bound, if any"
    )

    details: Optional[List[Dict[str, Any]]] = Field(
        None,
        description="Detailed validation errors following the Pydantic error schema"
    )

    def model_dump_json(self, **kwargs):
        """Serialize without null fields unless asked otherwise."""
        kwargs.setdefault('exclude_none', True)
        return super().model_dump_json(**kwargs)

    @classmethod
    def from_error(cls, error: Exception, message: Optional[str] = None) -> "ErrorResponse":
        """Create an ErrorResponse from a dispatch error.

        Validation details are taken from a wrapped Pydantic ValidationError
        when the error carries one as its cause.
        """
        cause = getattr(error, "cause", None)
        details = None
        if cause is not None and hasattr(cause, "errors"):
            try:
                details = cause.errors(include_url=False, include_context=False)
            except TypeError:
                details = cause.errors()
        return cls(
            error=message or str(error),
            parameter=getattr(error, "parameter", None),
            details=details,
        )
