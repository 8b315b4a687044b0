"""Append-only review notes.

A review item's ``notes`` is a single text log. Each entry is rendered as
``[<ISO-8601 timestamp>] <optional [TAG]> <body>`` and entries are joined
by a blank line, so the previous log is always a prefix of the new one.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .errors import InvalidInputError

ENTRY_SEPARATOR = "\n\n"


class NoteTag(str, Enum):
    """Markers for notes written as part of a resolution."""

    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class NoteEntry:
    """One timestamped entry in a review item's note log."""

    timestamp: datetime
    body: str = ""
    tag: NoteTag | None = None

    def render(self) -> str:
        parts = [f"[{self.timestamp.isoformat()}]"]
        if self.tag is not None:
            parts.append(f"[{self.tag.value}]")
        if self.body:
            parts.append(self.body)
        return " ".join(parts)


def append_entry(existing: str, entry: NoteEntry) -> str:
    """Return ``existing`` with ``entry`` appended."""
    rendered = entry.render()
    if not existing:
        return rendered
    return f"{existing}{ENTRY_SEPARATOR}{rendered}"


def require_text(value: str | None, field: str) -> str:
    """Strip ``value`` and reject it when nothing is left.

    Raises:
        InvalidInputError: If the value is missing or whitespace-only
    """
    stripped = (value or "").strip()
    if not stripped:
        raise InvalidInputError(f"{field} cannot be empty", field=field)
    return stripped


def annotation(note: str, at: datetime) -> NoteEntry:
    return NoteEntry(timestamp=at, body=require_text(note, "note"))


def approval(notes: str | None, at: datetime) -> NoteEntry:
    return NoteEntry(timestamp=at, body=(notes or "").strip(), tag=NoteTag.APPROVED)


def rejection(reason: str, notes: str | None, at: datetime) -> NoteEntry:
    body = f"Reason: {require_text(reason, 'reason')}"
    extra = (notes or "").strip()
    if extra:
        body = f"{body}\n{extra}"
    return NoteEntry(timestamp=at, body=body, tag=NoteTag.REJECTED)
