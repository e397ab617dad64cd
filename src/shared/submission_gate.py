from contextlib import contextmanager
from typing import Iterator, Set

from src.specs.common.errors import SubmissionInProgressError


class SubmissionGate:
    """Single-flight tokens: at most one in-flight submission per token.

    Tokens are claimed and released on the event loop thread, so no lock is
    needed between the membership check and the claim.
    """

    def __init__(self) -> None:
        self._held: Set[str] = set()

    def is_held(self, token: str) -> bool:
        return token in self._held

    @property
    def busy(self) -> bool:
        return bool(self._held)

    @contextmanager
    def hold(self, token: str) -> Iterator[str]:
        if token in self._held:
            raise SubmissionInProgressError(token)
        self._held.add(token)
        try:
            yield token
        finally:
            self._held.discard(token)
