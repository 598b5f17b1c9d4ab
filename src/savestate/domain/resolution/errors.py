"""Errors raised while resolving catalog identities."""

from __future__ import annotations


class ResolutionError(RuntimeError):
    """A single record could not be resolved; the batch should move on."""


class UnusableTitleError(ResolutionError, ValueError):
    """The title normalizes to nothing, so there is nothing to match on."""

    def __init__(self, title: str | None) -> None:
        super().__init__(f"No usable title in {title!r}")
        self.title = title
