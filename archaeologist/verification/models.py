"""Data models for citation verification and self-critique."""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, BaseModel, Field


class VerifiedLink(BaseModel):
    type: Literal["commit", "pr", "issue"]
    id: str
    url: str | None = None
    verified: bool = False
    reason: str | None = None


class CritiqueResult(BaseModel):
    issues_found: int = Field(default=0, ge=0, validation_alias=AliasChoices("issues_found", "issuesFound"))
    suggestions: list[str] = []


class VerificationReport(BaseModel):
    claims_verified: int = 0
    claims_failed: int = 0
    links_checked: list[VerifiedLink] = []
    overall_confidence: int
    critique: CritiqueResult = Field(default_factory=CritiqueResult)
