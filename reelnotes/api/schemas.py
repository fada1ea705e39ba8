from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponseSchema(BaseModel):
    """Schema for error responses with consistent format.

    All error responses include detail, error_code, and timestamp
    for debugging and client-side error handling.
    """

    detail: str = Field(
        ...,
        description="Human-readable error message describing what went wrong",
        examples=["Failed to write annotation document /videos/clip.json"],
    )
    error_code: str = Field(
        ...,
        description="Machine-readable error code for programmatic handling",
        examples=["DOCUMENT_WRITE_FAILED"],
    )
    timestamp: datetime = Field(
        ...,
        description="UTC timestamp when the error occurred",
        examples=["2025-05-19T02:22:21Z"],
    )


class IntervalSchema(BaseModel):
    """Schema for one time range on the media timeline.

    ``end`` is omitted while the interval is still open. ``createdAt`` is the
    key used to target updates and deletes.
    """

    model_config = ConfigDict(populate_by_name=True)

    start: float = Field(..., description="Start time in seconds", examples=[12.5])
    end: float | None = Field(
        default=None, description="End time in seconds; omitted while open"
    )
    created_at: float = Field(
        ...,
        alias="createdAt",
        description="Creation time in epoch milliseconds; identity key",
        examples=[1747621341000],
    )
    title: str | None = Field(default=None, description="Optional title")
    note: str | None = Field(default=None, description="Optional note")


class AnnotationDocumentSchema(BaseModel):
    """Schema for a sidecar annotation document.

    Root keys other than the ones below are preserved as written by a
    document patch.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        json_schema_extra={
            "example": {
                "createdAt": 1747621341000,
                "updatedAt": 1747621399000,
                "notes": [],
                "acts": [
                    {"start": 0, "end": 95.2, "createdAt": 1747621341500},
                    {"start": 95.2, "createdAt": 1747621380000, "title": "Act II"},
                ],
                "sections": [],
                "shots": [],
            }
        },
    )

    created_at: float = Field(..., alias="createdAt")
    updated_at: float | None = Field(default=None, alias="updatedAt")
    notes: list = Field(default_factory=list, description="Free-form notes")
    acts: list[IntervalSchema] = Field(default_factory=list)
    sections: list[IntervalSchema] = Field(default_factory=list)
    shots: list[IntervalSchema] = Field(default_factory=list)


class InitResponseSchema(BaseModel):
    """Schema for the result of initializing a document."""

    path: str = Field(..., description="Path of the sidecar document")
