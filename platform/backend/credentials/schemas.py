"""Pydantic models for the credential API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class CredentialUpdate(BaseModel):
    """Request body for storing an API key."""

    api_key: str = Field(..., min_length=1)
    # None falls back to the validate_api_keys setting
    verify: bool | None = None


class CredentialStatus(BaseModel):
    configured: bool
