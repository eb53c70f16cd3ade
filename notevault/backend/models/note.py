"""
Note Model.

One row per note. Content is either UTF-8 plaintext or, when
backend_encryption is set, an opaque blob produced by core.sealing.
"""

from datetime import datetime

from sqlalchemy import DateTime, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from notevault.backend.core.utils import utc_now
from notevault.backend.models.base import Base


class Note(Base):
    """
    Note database model.

    created_at is set once at insert and never updated; it doubles as the
    ownership nonce checked against capability token claims. A discoverable
    note is never encrypted on either side.
    """

    __tablename__ = "notes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )
    content: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    discoverable: Mapped[bool] = mapped_column(default=False, nullable=False)
    frontend_encryption: Mapped[bool] = mapped_column(default=False, nullable=False)
    backend_encryption: Mapped[bool] = mapped_column(default=False, nullable=False)
    allow_delete_with_passphrase: Mapped[bool] = mapped_column(
        default=False,
        nullable=False,
    )
    delete_after_read: Mapped[int | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False,
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        nullable=True,
        index=True,
    )

    def is_expired(self, now: datetime) -> bool:
        """True once expires_at has been reached."""
        return self.expires_at is not None and self.expires_at <= now

    def __repr__(self) -> str:
        return f"<Note(id={self.id!r}, backend_encryption={self.backend_encryption})>"
