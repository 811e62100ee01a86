"""Clinical review schemas."""

from pydantic import BaseModel, Field

from cogscreen.models.assessment import AssessmentStatus, Priority


class ReviewRequest(BaseModel):
    """Reviewer save: partial findings or completion."""

    status: AssessmentStatus = AssessmentStatus.UNDER_REVIEW
    review_notes: str | None = None
    clinical_score: str | None = Field(None, max_length=255)
    recommendations: str | None = None
    # Version the reviewer loaded; omit for last-writer-wins
    version: int | None = Field(None, ge=1)


class ReopenRequest(BaseModel):
    """Reopen a completed review."""

    reason: str = Field(min_length=1)


class PriorityRequest(BaseModel):
    """Change review priority."""

    priority: Priority
