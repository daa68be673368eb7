"""
Error taxonomy for the form design engine.

Structural problems are ValueErrors so callers can surface them to the
editor as bad input; unknown ids are LookupErrors; remote failures carry
the URL that failed.
"""


class FormDesignError(ValueError):
    """Base class for rejected edits and invalid designs."""


class BuilderValidationError(FormDesignError):
    """A builder intent was rejected because it would produce an invalid Form."""


class ReorderRejectedError(FormDesignError):
    """A field move would place a parent below one of its dependents."""


class ElementNotFoundError(LookupError):
    """A page, section or field id does not exist in the Form."""

    def __init__(self, kind: str, element_id: str):
        self.kind = kind
        self.element_id = element_id
        super().__init__(f"{kind} '{element_id}' not found")

    def __str__(self) -> str:
        return f"{self.kind} '{self.element_id}' not found"


class RemoteFetchError(RuntimeError):
    """A remote option list or persistence call failed."""

    def __init__(self, url: str, detail: str, status_code: int | None = None):
        self.url = url
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"Request to {url} failed: {detail}")


class StaleOptionsError(RuntimeError):
    """An option response was superseded by a newer request for another URL."""

    def __init__(self, field_id: str, url: str):
        self.field_id = field_id
        self.url = url
        super().__init__(f"Options for field '{field_id}' from {url} were superseded")
