"""
models/person.py — Person table definition.

A person belongs to exactly one event. Their id is the opaque identifier the
ledger works with. No business logic here.

FK policy: event_id ON DELETE RESTRICT — an event cannot be deleted while it
still has people.
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from eventledger.app.extensions import db


class Person(db.Model):
    __tablename__ = "people"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_people_name_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
    )

    # Free text: e-mail, phone, IBAN, whatever the group uses.
    contact: Mapped[str | None] = mapped_column(
        String(200),
        nullable=True,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Person id={self.id} event_id={self.event_id} name={self.name!r}>"
