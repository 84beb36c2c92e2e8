"""ORM models (SQLAlchemy 2.0).

Defines the single ``characters`` table.
"""

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, Text, text
from .db import Base


class Character(Base):
    """A persisted character row.

    Only ``name``, ``status``, ``species``, ``type`` and ``gender`` are written
    by the API. The origin/location/image columns are never populated and keep
    their empty-string defaults; ``created`` is stamped by the database.
    """

    __tablename__ = "characters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    species: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str | None] = mapped_column(Text, server_default="")
    gender: Mapped[str] = mapped_column(Text, nullable=False)
    origin_name: Mapped[str | None] = mapped_column(Text, server_default="")
    origin_url: Mapped[str | None] = mapped_column(Text, server_default="")
    location_name: Mapped[str | None] = mapped_column(Text, server_default="")
    location_url: Mapped[str | None] = mapped_column(Text, server_default="")
    image: Mapped[str | None] = mapped_column(Text, server_default="")
    created: Mapped[str | None] = mapped_column(
        Text, server_default=text("CURRENT_TIMESTAMP")
    )
