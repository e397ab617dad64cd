"""Shared fakes for the blob store and document store."""

from typing import Any, Dict, List, Optional

import pytest

from src.shared.notifier import CollectingNotifier, RecordingNavigator
from src.specs.common.collaborators_spec import StoredFile


class FakeBlobStorage:
    def __init__(self, calls: List[str], error: Optional[Exception] = None):
        self.calls = calls
        self.error = error
        self.uploads: List[Dict[str, Any]] = []

    async def upload(self, bucket_id: str, unique_id: str, data: bytes, content_type: Optional[str] = None) -> StoredFile:
        self.calls.append('upload')
        if self.error is not None:
            raise self.error
        self.uploads.append({'bucket_id': bucket_id, 'unique_id': unique_id, 'data': data, 'content_type': content_type})
        return StoredFile(id=unique_id, bucketId=bucket_id, size=len(data))

    def get_view_url(self, bucket_id: str, stored_id: str) -> str:
        self.calls.append('get_view_url')
        return f'https://media.example/{bucket_id}/{stored_id}'


class FakeDocumentStore:
    def __init__(self, calls: List[str]):
        self.calls = calls
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.reject = False
        self.error: Optional[Exception] = None
        self.read_error: Optional[Exception] = None
        self.created: List[Dict[str, Any]] = []
        self.updated: List[Dict[str, Any]] = []
        self._next_id = 0

    async def create(self, collection_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self.calls.append('create')
        if self.error is not None:
            raise self.error
        self.created.append(fields)
        if self.reject:
            return None
        self._next_id += 1
        document_id = f'post-{self._next_id}'
        document = {**fields, 'id': document_id, 'partitionKey': document_id}
        self.documents[document_id] = document
        return document

    async def update(self, collection_id: str, document_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self.calls.append('update')
        if self.error is not None:
            raise self.error
        self.updated.append({'id': document_id, **fields})
        if self.reject or document_id not in self.documents:
            return None
        document = {**fields, 'id': document_id, 'partitionKey': document_id}
        self.documents[document_id] = document
        return document

    async def get(self, collection_id: str, document_id: str) -> Optional[Dict[str, Any]]:
        self.calls.append('get')
        if self.read_error is not None:
            raise self.read_error
        return self.documents.get(document_id)


@pytest.fixture
def calls() -> List[str]:
    return []


@pytest.fixture
def blob_storage(calls):
    return FakeBlobStorage(calls)


@pytest.fixture
def document_store(calls):
    return FakeDocumentStore(calls)


@pytest.fixture
def notifier():
    return CollectingNotifier()


@pytest.fixture
def navigator():
    return RecordingNavigator()


@pytest.fixture
def existing_document(document_store) -> Dict[str, Any]:
    document = {
        'id': 'p1',
        'partitionKey': 'p1',
        'caption': 'old caption',
        'imageUrl': 'http://x/old.png',
        'imageId': 'old-image',
        'location': 'Lisbon',
        'tags': ['Art', 'Learn'],
        'creator': 'user-1',
        'createdAtUtc': '2024-01-01T00:00:00.000000Z',
    }
    document_store.documents['p1'] = document
    return document
