# Cosmos DB document store used by post submissions

import time
from typing import Any, Dict, Optional

from azure.cosmos import exceptions
from azure.cosmos.aio import ContainerProxy, CosmosClient

from src.shared.logging_utils import error as log_error, info as log_info
from src.specs.common.errors import ConfigurationError
from src.specs.common.ids import unique_id


class CosmosDocumentStore:
    """
    Document store over a Cosmos DB database.

    Collections map to containers partitioned on ``/partitionKey``, which is
    always the document id. Rejections raised by the service are logged and
    reported as ``None``; transport errors propagate to the caller.
    """

    def __init__(self, client: CosmosClient, database_name: str):
        self.client = client
        self.database_name = database_name
        self.database = client.get_database_client(database_name)

    @classmethod
    def from_connection_string(cls, connection_string: Optional[str], database_name: Optional[str]) -> "CosmosDocumentStore":
        if not connection_string or not database_name:
            raise ConfigurationError("Missing Cosmos DB connection string or database name")
        return cls(CosmosClient.from_connection_string(connection_string), database_name)

    def get_container(self, collection_id: str) -> ContainerProxy:
        return self.database.get_container_client(collection_id)

    async def create(self, collection_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Insert a new document under a freshly generated id

        Args:
            collection_id: Name of the container
            fields: Document fields, without id

        Returns:
            The stored document, or None if the service rejected it
        """
        start_time = time.time()
        document_id = unique_id()
        body = {**fields, "id": document_id, "partitionKey": document_id}
        try:
            result = await self.get_container(collection_id).create_item(body=body)
        except exceptions.CosmosHttpResponseError as e:
            log_error(
                None,
                f"cosmos:{collection_id}:create_rejected",
                documentId=document_id,
                statusCode=e.status_code,
                error=str(e),
            )
            return None
        log_info(
            None,
            f"cosmos:{collection_id}:created",
            documentId=document_id,
            durationMs=int((time.time() - start_time) * 1000),
        )
        return result

    async def update(
        self,
        collection_id: str,
        document_id: str,
        fields: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """
        Replace an existing document with the given field set

        Returns:
            The replaced document, or None if it is missing or was rejected
        """
        start_time = time.time()
        body = {**fields, "id": document_id, "partitionKey": document_id}
        try:
            result = await self.get_container(collection_id).replace_item(item=document_id, body=body)
        except exceptions.CosmosHttpResponseError as e:
            log_error(
                None,
                f"cosmos:{collection_id}:replace_rejected",
                documentId=document_id,
                statusCode=e.status_code,
                error=str(e),
            )
            return None
        log_info(
            None,
            f"cosmos:{collection_id}:replaced",
            documentId=document_id,
            durationMs=int((time.time() - start_time) * 1000),
        )
        return result

    async def get(self, collection_id: str, document_id: str) -> Optional[Dict[str, Any]]:
        """Read a document by id; None if it does not exist"""
        try:
            return await self.get_container(collection_id).read_item(
                item=document_id,
                partition_key=document_id,
            )
        except exceptions.CosmosResourceNotFoundError:
            log_info(None, f"cosmos:{collection_id}:not_found", documentId=document_id)
            return None

    async def close(self) -> None:
        await self.client.close()
