"""
API request and response models for the Barnacle REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Request fields are deliberately loose (optional strings): the field rules live
in auth/validation.py so that every client sees the same messages whether the
field was missing, empty or malformed. Wire names are camelCase.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SignupRequest(_CamelModel):
    """Request body for POST /api/auth/signup."""

    full_name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None
    agree_to_terms: bool = False


class LoginRequest(_CamelModel):
    """Request body for POST /api/auth/login."""

    email: Optional[str] = None
    password: Optional[str] = None
    remember_me: bool = False


class VerifyRequest(_CamelModel):
    """Request body for POST /api/auth/verify."""

    token: Optional[str] = None


class PromoteRequest(_CamelModel):
    """Request body for PUT /api/auth/promote-user."""

    user_id: Optional[str] = None
    new_role: Optional[str] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class ApiResponse(BaseModel):
    """Envelope shared by every endpoint, success and failure alike.

    Clients may rely on success and message only; data is endpoint-specific.
    """

    success: bool
    message: Optional[str] = None
    data: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Failure envelope. error and stack are filled only in DEBUG mode."""

    success: bool = False
    message: str
    error: Optional[str] = None
    stack: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = Field(default="healthy")
    version: str
