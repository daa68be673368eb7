"""
Navigation Runtime.

A state machine over the pages of one Form. The state is the current
page id; button fields drive transitions and may persist the bound
values before moving on.

Transition rules:
- next/submit: persist when the button has an API URL, then go to the
  explicit target page, else the following page, else stay
- back: go to the explicit target page, else stay
- custom button: persist when it has an API URL, then go to the explicit
  target page if any
A target that no longer resolves to a page leaves the runtime in place.
"""

import logging
from typing import Any

from formdesign.clients.http_client import PersistenceClient
from formdesign.exceptions import ElementNotFoundError, FormDesignError
from formdesign.schemas.api import NavigationOutcome
from formdesign.schemas.form_schema import Field, Form, Page
from formdesign.services.resolver import DependencyResolver
from formdesign.services.submission import build_payload
from formdesign.utils.field_kinds import BUTTON_KINDS

logger = logging.getLogger(__name__)


class NavigationRuntime:
    """Walks a form's pages in response to button activations."""

    def __init__(
        self,
        form: Form,
        persistence: PersistenceClient | None = None,
        resolver: DependencyResolver | None = None,
        values: dict[str, Any] | None = None,
        current_page_id: str | None = None,
    ):
        self.form = form
        self.persistence = persistence
        self.resolver = resolver or DependencyResolver()
        self.values: dict[str, Any] = dict(values or {})
        if current_page_id is None:
            current_page_id = form.pages[0].id
        else:
            form.find_page(current_page_id)
        self.current_page_id = current_page_id

    @property
    def current_page(self) -> Page:
        return self.form.find_page(self.current_page_id)

    def bind(self, name: str, value: Any) -> None:
        """Record the runtime value of a field."""
        self.values[name] = value

    def visible_fields(self) -> list[Field]:
        return self.resolver.visible_fields(self.form, self.current_page_id, self.values)

    def page_payload(self) -> dict[str, Any]:
        return build_payload(self.form, self.values, self.current_page_id, self.resolver)

    def form_payload(self) -> dict[str, Any]:
        return build_payload(self.form, self.values, None, self.resolver)

    def find_button(self, button_id: str) -> Field:
        """Find a button on the current page (navigation bar or sections)."""
        page = self.current_page
        for action in page.navigationActions:
            if action.id == button_id:
                return action
        for section in page.sections:
            for field in section.fields:
                if field.id == button_id:
                    if field.type not in BUTTON_KINDS:
                        raise FormDesignError(f"Field '{field.label}' is not a button")
                    return field
        raise ElementNotFoundError("Button", button_id)

    def next_page_id(self) -> str | None:
        """Get the page following the current one in sequence."""
        index = self.form.page_index(self.current_page_id)
        if index + 1 < len(self.form.pages):
            return self.form.pages[index + 1].id
        return None

    def resolve_target(self, button: Field) -> str | None:
        """Work out where a button leads; None means stay on this page."""
        if button.buttonTargetPage:
            if self.form.has_page(button.buttonTargetPage):
                return button.buttonTargetPage
            logger.warning(
                "Button %s targets missing page %s", button.id, button.buttonTargetPage
            )
            return None
        if button.type in ("nextButton", "submitButton"):
            return self.next_page_id()
        # Back and custom buttons only move to an explicit target.
        return None

    async def activate(self, button_id: str) -> NavigationOutcome:
        """
        Activate a button on the current page.

        The persistence call, when there is one, completes before the
        transition. If it fails the error propagates and the runtime
        stays where it was.

        Raises:
            ElementNotFoundError: If the button is not on the current page
            RemoteFetchError: If persisting the values fails
        """
        button = self.find_button(button_id)
        from_page_id = self.current_page_id
        persisted = False

        if button.type != "backButton" and button.buttonApiUrl:
            if self.persistence is None:
                raise RuntimeError("No persistence client configured for navigation")
            payload = self.form_payload() if button.type == "submitButton" else self.page_payload()
            await self.persistence.save(button.buttonApiUrl, payload)
            persisted = True

        target = self.resolve_target(button)
        if target is not None:
            self.current_page_id = target
        logger.debug(f"{button.type} on {from_page_id} -> {self.current_page_id}")

        return NavigationOutcome(
            fromPageId=from_page_id,
            toPageId=self.current_page_id,
            transitioned=target is not None and target != from_page_id,
            persisted=persisted,
            buttonType=button.type,
        )
