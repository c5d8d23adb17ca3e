"""Change entry model."""

from __future__ import annotations

from pydantic import BaseModel


class ChangeEntry(BaseModel):
    """A formatted change derived from one commit."""

    title: str
    description: str = ""
    notice: str | None = None
