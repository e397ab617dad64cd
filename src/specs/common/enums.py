from enum import Enum

class SubmitAction(str, Enum):
    CREATE = "Create"
    UPDATE = "Update"

class SubmissionState(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    COMMITTING = "committing"
    SUCCEEDED = "succeeded"
    SOFT_FAILED = "soft_failed"
    HARD_FAILED = "hard_failed"

class FailureKind(str, Enum):
    UPLOAD_FAILED = "upload_failed"
    MUTATION_REJECTED = "mutation_rejected"
    UNEXPECTED_FAILURE = "unexpected_failure"

class FailureMode(str, Enum):
    # lenient: a rejected mutation is reported but navigation still happens
    LENIENT = "lenient"
    STRICT = "strict"

class ValidationErrorKind(str, Enum):
    TOO_SHORT = "TooShort"
    INVALID_TYPE = "InvalidType"
    INVALID_FORMAT = "InvalidFormat"

class NavigationKind(str, Enum):
    HOME = "home"
    DETAIL = "detail"
    BACK = "back"
