"""
Shared UI preferences: sidebars, list views, theme and the current class.

The store is constructed explicitly and handed to whoever needs it. Every
change produces a new immutable UISnapshot which is pushed to subscribers.
"""

import logging
from collections.abc import Callable
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

RightSidebarMode = Literal["upcoming", "ai-chat"]
ViewMode = Literal["grid", "list"]
SortBy = Literal["recent", "name", "date"]
OwnerFilter = Literal["all", "me"]
Theme = Literal["dark", "light"]


class UISnapshot(BaseModel):
    """Full UI state at one point in time."""

    model_config = ConfigDict(frozen=True)

    left_sidebar_open: bool = True
    right_sidebar_open: bool = True
    right_sidebar_mode: RightSidebarMode = "upcoming"
    view_mode: ViewMode = "grid"
    sort_by: SortBy = "recent"
    filter_owner: OwnerFilter = "all"
    theme: Theme = "dark"
    current_class_id: UUID | None = None
    current_class_name: str | None = None


Listener = Callable[[UISnapshot], None]


class UIState:
    """Observable store of UISnapshot values."""

    def __init__(self, initial: UISnapshot | None = None):
        self._state = initial or UISnapshot()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> UISnapshot:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with each new snapshot. Returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def toggle_left_sidebar(self) -> None:
        self._set(left_sidebar_open=not self._state.left_sidebar_open)

    def toggle_right_sidebar(self) -> None:
        self._set(right_sidebar_open=not self._state.right_sidebar_open)

    def open_ai_chat(self) -> None:
        self._set(right_sidebar_open=True, right_sidebar_mode="ai-chat")

    def set_right_sidebar_mode(self, mode: RightSidebarMode) -> None:
        self._set(right_sidebar_mode=mode)

    def set_view_mode(self, mode: ViewMode) -> None:
        self._set(view_mode=mode)

    def set_sort_by(self, sort_by: SortBy) -> None:
        self._set(sort_by=sort_by)

    def set_filter_owner(self, filter_owner: OwnerFilter) -> None:
        self._set(filter_owner=filter_owner)

    def set_theme(self, theme: Theme) -> None:
        self._set(theme=theme)

    def set_current_class(self, class_id: UUID | str | None, class_name: str | None = None) -> None:
        """Set the class the assistant sidebar talks about; None clears it."""
        if class_id is None:
            class_name = None
        self._set(current_class_id=class_id, current_class_name=class_name)

    def snapshot(self) -> dict[str, Any]:
        """JSON-compatible dict for a host to persist."""
        return self._state.model_dump(mode="json")

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "UIState":
        return cls(UISnapshot.model_validate(data))

    def _set(self, **changes: Any) -> None:
        # Validate through the model so bad values never reach subscribers
        new_state = UISnapshot.model_validate({**self._state.model_dump(), **changes})
        if new_state == self._state:
            return
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                logger.exception("UI state listener raised")
