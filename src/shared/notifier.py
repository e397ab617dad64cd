from typing import List, Optional

from src.shared.logging_utils import info as log_info
from src.specs.models.submission import NavigationDirective, Notification


class CollectingNotifier:
    """Keeps notifications so a request handler can return them to the client."""

    def __init__(self) -> None:
        self.notifications: List[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)


class RecordingNavigator:
    """Remembers the last directive it was asked to follow."""

    def __init__(self) -> None:
        self.history: List[NavigationDirective] = []

    @property
    def last(self) -> Optional[NavigationDirective]:
        return self.history[-1] if self.history else None

    def go(self, directive: NavigationDirective) -> None:
        log_info(None, "navigate:go", kind=directive.kind.value, path=directive.path)
        self.history.append(directive)
