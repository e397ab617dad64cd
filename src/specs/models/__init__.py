from .submission import (
    CreatePost,
    UpdatePost,
    SubmitIntent,
    NavigationDirective,
    Notification,
    FailureDescriptor,
    SubmissionResult,
)

__all__ = [
    "CreatePost",
    "UpdatePost",
    "SubmitIntent",
    "NavigationDirective",
    "Notification",
    "FailureDescriptor",
    "SubmissionResult",
]
