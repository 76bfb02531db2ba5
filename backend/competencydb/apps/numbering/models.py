from __future__ import annotations

from sqlalchemy import Column, Integer, String

from ...database import Base


class SequenceCounter(Base):
    """
    One running number per namespace ("vsr", "tr", ...).

    Only ever changed through an atomic increment; see services.next_id.
    """

    __tablename__ = "custom_numbering"

    module = Column(String(64), primary_key=True)
    running_number = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<SequenceCounter module={self.module} running_number={self.running_number}>"
