from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from src.specs.common.enums import NavigationKind, SubmissionState
from src.specs.models.submission import Notification, SubmissionResult


class NavigationBody(BaseModel):
    kind: NavigationKind
    path: Optional[str] = None


class SubmitPostResponse(BaseModel):
    success: bool
    state: SubmissionState
    traceId: str
    postId: Optional[str] = None
    errorCode: Optional[str] = None
    navigation: Optional[NavigationBody] = None
    notifications: List[Notification] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: SubmissionResult) -> "SubmitPostResponse":
        navigation = None
        if result.navigation is not None:
            navigation = NavigationBody(kind=result.navigation.kind, path=result.navigation.path)
        return cls(
            success=result.succeeded,
            state=result.state,
            traceId=result.traceId,
            postId=result.postId,
            errorCode=result.failure.code if result.failure else None,
            navigation=navigation,
            notifications=result.notifications,
        )


class PostFormDefaultsResponse(BaseModel):
    postId: str
    caption: str
    file: List[Any] = Field(default_factory=list)
    location: str
    tags: str


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errorCode: Optional[str] = None
    details: Optional[Dict] = None


class PostFormBody(BaseModel):
    """JSON form body. Attachments are only accepted as multipart parts."""

    caption: str = Field(..., min_length=1)
    location: str = ""
    tags: str = Field("", description="Comma separated tags")
