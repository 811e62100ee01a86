"""Per-year counter backing assessment numbers."""

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column

from cogscreen.db.base import Base, TimestampMixin


class AssessmentSequence(Base, TimestampMixin):
    """Last assessment number issued in a calendar year.

    The row is locked by the incrementing UPDATE for the remainder of the
    submitting transaction, which serializes allocation per year.
    """

    __tablename__ = "assessment_sequences"

    year: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=False,
    )
    last_value: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return f"<AssessmentSequence {self.year}={self.last_value}>"
