from functools import lru_cache
from typing import Any, Dict, List, Optional, Union

import azure.functions as func
from pydantic import BaseModel, ValidationError as PydanticValidationError

from src.services.post_submission import PostSubmissionService
from src.shared.blob_store import AzureBlobStorage
from src.shared.config import AppConfig, load_config
from src.shared.cosmos_client import CosmosDocumentStore
from src.shared.logging_utils import error as log_error, info as log_info
from src.shared.notifier import CollectingNotifier
from src.shared.submission_gate import SubmissionGate
from src.specs.common.collaborators_spec import BlobStorage, DocumentStore, IdentityProvider
from src.specs.common.enums import SubmissionState, SubmitAction
from src.specs.common.errors import (
    ConfigurationError,
    ResourceNotFoundError,
    SubmissionInProgressError,
    ValidationError,
)
from src.specs.documents.post_document_spec import ExistingPost
from src.specs.forms.post_form import Attachment, post_form_defaults, validate_post_form
from src.specs.http.submit_post import ErrorResponse, PostFormDefaultsResponse, SubmitPostResponse
from src.specs.models.submission import CreatePost, UpdatePost


bp = func.Blueprint()

# Set by App Service authentication in front of the function app
PRINCIPAL_HEADER = "x-ms-client-principal-id"
FORM_INSTANCE_HEADER = "x-form-instance"
FORM_TEXT_FIELDS = ("caption", "location", "tags")
FORM_FILE_FIELDS = ("file", "files")

# Shared by every request in this worker so a double submit of one intent is rejected
_GATE = SubmissionGate()


@lru_cache(maxsize=1)
def get_document_store() -> CosmosDocumentStore:
    config = load_config()
    return CosmosDocumentStore.from_connection_string(config.cosmos_connection_string, config.cosmos_database)


@lru_cache(maxsize=1)
def get_blob_storage() -> AzureBlobStorage:
    return AzureBlobStorage.from_connection_string(load_config().blob_connection_string)


class HeaderIdentity(IdentityProvider):
    """Identity provider reading the authenticated principal from request headers."""

    def __init__(self, req: func.HttpRequest):
        self._headers = req.headers

    def current_actor_id(self) -> Optional[str]:
        return self._headers.get(PRINCIPAL_HEADER) or None


def _json_response(model: BaseModel, status_code: int) -> func.HttpResponse:
    return func.HttpResponse(
        body=model.model_dump_json(),
        mimetype="application/json",
        status_code=status_code,
    )


def _error_response(message: str, status_code: int, code: Optional[str] = None, details: Optional[Dict] = None) -> func.HttpResponse:
    return _json_response(ErrorResponse(message=message, errorCode=code, details=details), status_code)


def _read_form(req: func.HttpRequest) -> Dict[str, Any]:
    """Raw form values from a JSON body or a multipart form.

    Raises:
        ValueError: If a JSON body is malformed, not an object or carries files
    """
    content_type = (req.headers.get("content-type") or "").lower()
    if content_type.startswith("application/json"):
        body = req.get_json()
        if not isinstance(body, dict):
            raise ValueError("JSON body must be an object")
        # attachments are only read from multipart parts
        if any(body.get(key) for key in FORM_FILE_FIELDS):
            raise ValueError("JSON body cannot carry files; send multipart/form-data")
        return {key: value for key, value in body.items() if key not in FORM_FILE_FIELDS}

    raw: Dict[str, Any] = {key: req.form.get(key) for key in FORM_TEXT_FIELDS if key in req.form}
    files: List[Attachment] = []
    for upload in req.files.getlist("file"):
        data = upload.read()
        # browsers send an empty part when no file was picked
        if not data:
            continue
        files.append(Attachment(filename=upload.filename or "", contentType=upload.content_type or None, data=data))
    raw["file"] = files
    return raw


async def _existing_post(
    document_store: DocumentStore,
    collection_id: str,
    post_id: str,
) -> Union[ExistingPost, func.HttpResponse]:
    """The stored post, or the error response explaining why it cannot be used."""
    try:
        stored = await document_store.get(collection_id, post_id)
    except Exception as exc:
        log_error(None, "posts:read_failed", postId=post_id, error=str(exc), errorType=type(exc).__name__)
        return _error_response("Could not read the post", 502, code="STORE_UNAVAILABLE")
    if stored is None:
        err = ResourceNotFoundError("Post", post_id).to_dict()
        return _error_response(err["message"], 404, code=err["code"])
    try:
        return ExistingPost.model_validate(stored)
    except PydanticValidationError as exc:
        log_error(None, "posts:stored_post_invalid", postId=post_id, errors=exc.error_count())
        return _error_response("Stored post is malformed", 502, code="INVALID_STORED_POST")


async def submit_post_request(
    req: func.HttpRequest,
    post_id: Optional[str],
    *,
    config: AppConfig,
    document_store: DocumentStore,
    blob_storage: BlobStorage,
    gate: SubmissionGate,
) -> func.HttpResponse:
    """Validate the submitted form, run the submission and describe the outcome."""
    action = SubmitAction.UPDATE if post_id else SubmitAction.CREATE
    identity: IdentityProvider = HeaderIdentity(req)
    actor_id = identity.current_actor_id()
    if not actor_id:
        log_error(None, "posts:unauthenticated", action=action.value)
        return _error_response("Authentication required", 401, code="UNAUTHENTICATED")

    try:
        raw = _read_form(req)
    except ValueError as exc:
        log_error(None, "posts:invalid_body", action=action.value, error=str(exc))
        return _error_response(f"Invalid request body: {exc}", 400, code="INVALID_BODY")

    try:
        draft = validate_post_form(raw)
    except ValidationError as exc:
        log_info(None, "posts:validation_failed", action=action.value, field=exc.field, kind=exc.kind.value)
        err = exc.to_dict()
        return _error_response(err["message"], 400, code=err["code"], details=err["details"])

    if post_id:
        existing = await _existing_post(document_store, config.posts_container, post_id)
        if isinstance(existing, func.HttpResponse):
            return existing
        intent = UpdatePost(existing=existing)
    else:
        intent = CreatePost()

    notifier = CollectingNotifier()
    service = PostSubmissionService(
        blob_storage=blob_storage,
        document_store=document_store,
        bucket_id=config.media_bucket_id,
        collection_id=config.posts_container,
        notifier=notifier,
        failure_mode=config.failure_mode,
        gate=gate,
    )
    try:
        result = await service.submit(draft, intent, actor_id, form_key=req.headers.get(FORM_INSTANCE_HEADER))
    except SubmissionInProgressError as exc:
        log_info(None, "posts:submission_in_progress", token=exc.token)
        err = exc.to_dict()
        return _error_response(err["message"], 409, code=err["code"])

    if result.state is SubmissionState.HARD_FAILED:
        status_code = 502
    elif result.state is SubmissionState.SUCCEEDED and action is SubmitAction.CREATE:
        status_code = 201
    else:
        status_code = 200
    return _json_response(SubmitPostResponse.from_result(result), status_code)


async def post_form_request(req: func.HttpRequest, post_id: str, *, config: AppConfig, document_store: DocumentStore) -> func.HttpResponse:
    existing = await _existing_post(document_store, config.posts_container, post_id)
    if isinstance(existing, func.HttpResponse):
        return existing
    defaults = post_form_defaults(existing)
    return _json_response(PostFormDefaultsResponse(postId=post_id, **defaults), 200)


def _configuration_failure(exc: ConfigurationError) -> func.HttpResponse:
    log_error(None, "posts:configuration_error", error=str(exc))
    return _error_response("Service is not configured", 500, code=exc.code)


@bp.function_name(name="create_post")
@bp.route(route="posts", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
async def create_post(req: func.HttpRequest) -> func.HttpResponse:
    try:
        config = load_config()
        store, blobs = get_document_store(), get_blob_storage()
    except ConfigurationError as exc:
        return _configuration_failure(exc)
    return await submit_post_request(req, None, config=config, document_store=store, blob_storage=blobs, gate=_GATE)


@bp.function_name(name="update_post")
@bp.route(route="posts/{postId}", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
async def update_post(req: func.HttpRequest) -> func.HttpResponse:
    try:
        config = load_config()
        store, blobs = get_document_store(), get_blob_storage()
    except ConfigurationError as exc:
        return _configuration_failure(exc)
    post_id = req.route_params.get("postId")
    return await submit_post_request(req, post_id, config=config, document_store=store, blob_storage=blobs, gate=_GATE)


@bp.function_name(name="get_post_form")
@bp.route(route="posts/{postId}/form", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
async def get_post_form(req: func.HttpRequest) -> func.HttpResponse:
    try:
        config = load_config()
        store = get_document_store()
    except ConfigurationError as exc:
        return _configuration_failure(exc)
    return await post_form_request(req, req.route_params.get("postId"), config=config, document_store=store)
