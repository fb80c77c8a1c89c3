"""Error envelope schemas shared by every endpoint."""

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """A single field-level or row-level problem.

    Allocation problems add ``code``, ``article``, ``requested`` and
    ``attempted`` next to ``field`` and ``message``.
    """

    model_config = ConfigDict(extra="allow")

    field: str | None = None
    message: str


class ErrorBody(BaseModel):
    """Structured error body returned inside every error response."""

    code: str
    message: str
    details: list[ErrorDetail] = []
    request_id: str = Field(alias="requestId")

    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(BaseModel):
    """Top-level error envelope."""

    error: ErrorBody
