"""Error taxonomy for investigations.

Evidence problems are never fatal: providers raise ``EvidenceUnavailable`` and
the pipeline records the gap and moves on. Reasoning problems are split into a
retryable ``ReasoningOverloaded`` and everything else; once retries are spent,
or the service rejects the prompt outright, the investigation fails with
``SynthesisFailed``.
"""

from __future__ import annotations


class ArchaeologistError(Exception):
    """Base class for all investigation errors."""


class EvidenceUnavailable(ArchaeologistError):
    """A single evidence source could not be consulted."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class ReasoningError(ArchaeologistError):
    """The reasoning service failed to produce a response."""


class ReasoningOverloaded(ReasoningError):
    """The reasoning service is rate limiting or overloaded; safe to retry."""


class SynthesisFailed(ArchaeologistError):
    """Synthesis could not be completed; the case is marked failed."""


class CaseNotFound(ArchaeologistError):
    """No case or stored result exists for the requested identifier."""

    def __init__(self, case_id: str) -> None:
        super().__init__(f"Case not found: {case_id}")
        self.case_id = case_id
