"""
Post submission workflow: optional media upload followed by exactly one
create or update mutation against the document store.
"""
from time import perf_counter
from typing import Dict, List, Optional, Tuple

from src.shared.logging_utils import error as log_error, info as log_info, warning as log_warning
from src.shared.submission_gate import SubmissionGate
from src.specs.common.collaborators_spec import (
    BlobStorage,
    DocumentStore,
    MediaReplacedHook,
    Navigator,
    Notifier,
)
from src.specs.common.datetime_utils import utc_now_iso
from src.specs.common.enums import FailureKind, FailureMode, SubmissionState, SubmitAction
from src.specs.common.errors import MutationRejected, PostComposerError, UnexpectedFailure, UploadFailed
from src.specs.common.ids import unique_id
from src.specs.documents.post_document_spec import ExistingPost, PostDocument, PostFields
from src.specs.forms.post_form import Attachment, PostDraft
from src.specs.models.submission import (
    SubmitIntent,
    FailureDescriptor,
    NavigationDirective,
    Notification,
    SubmissionResult,
    UpdatePost,
)


async def log_media_replaced(old_stored_id: str, trace_id: str) -> None:
    # TODO: delete the replaced blob once a retention policy for post media is agreed
    log_info(trace_id, "media:replaced", oldImageId=old_stored_id, deleted=False)


class PostSubmissionService:
    """
    Runs post submissions for one form instance.

    Actor identity, notifications and navigation are passed in explicitly so
    the service holds no process-wide state.
    """

    def __init__(
        self,
        *,
        blob_storage: BlobStorage,
        document_store: DocumentStore,
        bucket_id: str,
        collection_id: str,
        notifier: Notifier,
        navigator: Optional[Navigator] = None,
        failure_mode: FailureMode = FailureMode.LENIENT,
        on_media_replaced: MediaReplacedHook = log_media_replaced,
        gate: Optional[SubmissionGate] = None,
    ):
        self._blobs = blob_storage
        self._store = document_store
        self._bucket_id = bucket_id
        self._collection_id = collection_id
        self._notifier = notifier
        self._navigator = navigator
        self._failure_mode = failure_mode
        self._on_media_replaced = on_media_replaced
        self._gate = gate or SubmissionGate()
        self._in_flight: Dict[SubmitAction, int] = {SubmitAction.CREATE: 0, SubmitAction.UPDATE: 0}

    @property
    def is_busy(self) -> bool:
        """True while a create or an update is in flight."""
        return self._in_flight[SubmitAction.CREATE] > 0 or self._in_flight[SubmitAction.UPDATE] > 0

    @staticmethod
    def intent_token(intent: SubmitIntent, actor_id: str) -> str:
        if isinstance(intent, UpdatePost):
            return f"update:{intent.existing.id}"
        return f"create:{actor_id}"

    async def submit(
        self,
        draft: PostDraft,
        intent: SubmitIntent,
        actor_id: str,
        form_key: Optional[str] = None,
    ) -> SubmissionResult:
        """
        Upload the first attached file if any, then commit the post.

        Args:
            draft: Validated form input
            intent: CreatePost, or UpdatePost carrying the post to replace
            actor_id: Identifier of the authenticated user
            form_key: Optional token for the submitting form instance

        Returns:
            SubmissionResult; ``navigation`` is None when navigation is suppressed

        Raises:
            SubmissionInProgressError: If the same intent is already in flight
        """
        token = form_key or self.intent_token(intent, actor_id)
        with self._gate.hold(token):
            self._in_flight[intent.action] += 1
            try:
                result = await self._run(draft, intent, actor_id)
            finally:
                self._in_flight[intent.action] -= 1

        if result.navigation is not None and self._navigator is not None:
            self._navigator.go(result.navigation)
        return result

    def cancel(self) -> NavigationDirective:
        directive = NavigationDirective.back()
        if self._navigator is not None:
            self._navigator.go(directive)
        return directive

    async def _upload(self, attachment: Attachment, trace_id: str) -> Tuple[str, str]:
        try:
            stored = await self._blobs.upload(
                self._bucket_id,
                unique_id(),
                attachment.data,
                attachment.contentType,
            )
        except Exception as exc:
            raise UploadFailed(str(exc), details={"filename": attachment.filename}) from exc
        if not stored or not stored.id:
            raise UploadFailed("Upload returned no stored object", details={"filename": attachment.filename})

        try:
            url = self._blobs.get_view_url(self._bucket_id, stored.id)
        except Exception as exc:
            raise UploadFailed(str(exc), details={"storedId": stored.id}) from exc
        if not url:
            raise UploadFailed("No view URL for the uploaded object", details={"storedId": stored.id})

        log_info(trace_id, "submit:uploaded", storedId=stored.id, bytes=len(attachment.data))
        return stored.id, url

    def _fields(
        self,
        draft: PostDraft,
        existing: Optional[ExistingPost],
        actor_id: str,
        image_id: str,
        image_url: str,
    ) -> PostFields:
        now = utc_now_iso()
        if existing is None:
            return PostFields(
                caption=draft.caption,
                imageUrl=image_url,
                imageId=image_id,
                location=draft.location,
                tags=draft.tag_list,
                creator=actor_id,
                createdAtUtc=now,
            )
        return PostFields(
            caption=draft.caption,
            imageUrl=image_url,
            imageId=image_id,
            location=draft.location,
            tags=draft.tag_list,
            creator=existing.creator or actor_id,
            createdAtUtc=existing.createdAtUtc or now,
            updatedAtUtc=now,
        )

    async def _run(
        self,
        draft: PostDraft,
        intent: SubmitIntent,
        actor_id: str,
    ) -> SubmissionResult:
        start = perf_counter()
        trace_id = unique_id()
        action = intent.action
        existing = intent.existing if isinstance(intent, UpdatePost) else None
        states: List[SubmissionState] = [SubmissionState.IDLE]
        notifications: List[Notification] = []

        def report(notification: Notification) -> None:
            notifications.append(notification)
            self._notifier.notify(notification)

        def hard_failure(kind: FailureKind, failure: PostComposerError, cause: BaseException) -> SubmissionResult:
            message = str(failure)
            log_error(
                trace_id,
                f"submit:{kind.value}",
                action=action.value,
                code=failure.code,
                error=message,
                errorType=type(cause).__name__,
            )
            report(Notification(title=f"{action.value} post failed.", description=message))
            states.append(SubmissionState.HARD_FAILED)
            return SubmissionResult(
                traceId=trace_id,
                action=action,
                state=SubmissionState.HARD_FAILED,
                states=states,
                failure=FailureDescriptor(
                    kind=kind,
                    code=failure.code,
                    message=f"{action.value} post failed.",
                    cause=message,
                ),
                notifications=notifications,
            )

        log_info(
            trace_id,
            "submit:start",
            action=action.value,
            actorId=actor_id,
            postId=existing.id if existing else None,
            files=len(draft.files),
        )

        new_image_id: Optional[str] = None
        try:
            if draft.files:
                states.append(SubmissionState.UPLOADING)
                new_image_id, image_url = await self._upload(draft.files[0], trace_id)
                image_id = new_image_id
            elif existing is not None:
                image_id, image_url = existing.imageId, existing.imageUrl
            else:
                image_id, image_url = "", ""

            states.append(SubmissionState.COMMITTING)
            fields = self._fields(draft, existing, actor_id, image_id, image_url)
            if existing is None:
                stored = await self._store.create(self._collection_id, fields.model_dump())
            else:
                stored = await self._store.update(self._collection_id, existing.id, fields.model_dump())
        except UploadFailed as exc:
            return hard_failure(FailureKind.UPLOAD_FAILED, exc, exc.__cause__ or exc)
        except Exception as exc:
            failure = UnexpectedFailure(str(exc), details={"errorType": type(exc).__name__})
            return hard_failure(FailureKind.UNEXPECTED_FAILURE, failure, exc)

        navigation = (
            NavigationDirective.to_detail(existing.id)
            if existing is not None
            else NavigationDirective.to_home()
        )

        if not stored:
            rejected = MutationRejected(
                f"{action.value} post failed. Please try again.",
                details={"failureMode": self._failure_mode.value},
            )
            log_warning(trace_id, "submit:mutation_rejected", action=action.value, code=rejected.code, **rejected.details)
            report(Notification(title=str(rejected)))
            strict = self._failure_mode is FailureMode.STRICT
            state = SubmissionState.HARD_FAILED if strict else SubmissionState.SOFT_FAILED
            states.append(state)
            return SubmissionResult(
                traceId=trace_id,
                action=action,
                state=state,
                states=states,
                failure=FailureDescriptor(
                    kind=FailureKind.MUTATION_REJECTED,
                    code=rejected.code,
                    message=str(rejected),
                ),
                navigation=None if strict else navigation,
                notifications=notifications,
            )

        post_id = existing.id if existing is not None else stored.get("id")
        document = (
            PostDocument(id=post_id, partitionKey=post_id, **fields.model_dump())
            if post_id
            else None
        )
        states.append(SubmissionState.SUCCEEDED)
        log_info(
            trace_id,
            "submit:committed",
            action=action.value,
            postId=post_id,
            durationMs=int((perf_counter() - start) * 1000),
        )

        if existing is not None and new_image_id and existing.imageId and existing.imageId != new_image_id:
            try:
                await self._on_media_replaced(existing.imageId, trace_id)
            except Exception as exc:
                log_error(trace_id, "media:replaced_hook_failed", oldImageId=existing.imageId, error=str(exc))

        return SubmissionResult(
            traceId=trace_id,
            action=action,
            state=SubmissionState.SUCCEEDED,
            states=states,
            postId=post_id,
            document=document,
            navigation=navigation,
            notifications=notifications,
        )
