"""Schemas for the AI question-answering flow."""

from pydantic import BaseModel, ConfigDict, Field


class SourceCitation(BaseModel):
    """A reference to a document (and optionally a page) backing an answer."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    file_name: str
    page: int | None = None
    relevance_score: float | None = None


class AIQueryRequest(BaseModel):
    """Question about a class's materials. Length is checked by the action."""

    question: str


class AIQueryResult(BaseModel):
    """
    Uniform envelope for an AI query.

    Failures carry an empty answer and no sources; successes pass through
    the external service's answer, sources and confidence.
    """

    success: bool
    answer: str = ""
    sources: list[SourceCitation] = Field(default_factory=list)
    confidence: float | None = None
    error: str | None = None
    class_name: str | None = None

    @classmethod
    def failure(cls, error: str) -> "AIQueryResult":
        return cls(success=False, error=error)


class ReindexResult(BaseModel):
    """Outcome of a manual cache invalidation."""

    success: bool
