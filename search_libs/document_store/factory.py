"""Document store factory for creating different implementations.

Centralizes creation of concrete ``DocumentStore`` backends so callers don't
depend on implementation details.
"""

from enum import Enum
from typing import Any, Dict

import structlog

from ..common.config import BaseConfig
from .base import DocumentStore
from .memory import MemoryDocumentStore
from .postgres import PostgresDocumentStore

logger = structlog.get_logger("document_store.factory")


class DocumentStoreType(Enum):
    """Supported document store types."""
    POSTGRES = "postgres"
    MEMORY = "memory"


class DocumentStoreFactory:
    """Factory for creating document store instances."""

    @staticmethod
    def create(store_type: DocumentStoreType, config: Dict[str, Any]) -> DocumentStore:
        """Create a document store instance.

        Parameters
        - store_type: A ``DocumentStoreType`` enum value
        - config: Backend-specific parameters (e.g., DSNs for postgres)
        """
        if store_type == DocumentStoreType.POSTGRES:
            dsn = config.get("dsn")
            if not dsn:
                raise ValueError("Postgres store requires 'dsn' in config")

            return PostgresDocumentStore(
                dsn=dsn,
                write_dsn=config.get("write_dsn"),
                pool_size=config.get("pool_size", 10),
                command_timeout=config.get("command_timeout", 60),
                vector_dimension=config.get("vector_dimension"),
            )

        elif store_type == DocumentStoreType.MEMORY:
            return MemoryDocumentStore(vector_dimension=config.get("vector_dimension"))

        else:
            raise ValueError(f"Unsupported document store type: {store_type}")

    @staticmethod
    def create_from_config(config: Dict[str, Any]) -> DocumentStore:
        """Create document store from a configuration dictionary.

        Expects a ``type`` key and any implementation-specific fields.
        """
        store_type_str = config.get("type", "postgres")

        try:
            store_type = DocumentStoreType(store_type_str)
        except ValueError:
            raise ValueError(f"Unsupported document store type: {store_type_str}")

        return DocumentStoreFactory.create(store_type, config)


def create_document_store(config: BaseConfig) -> DocumentStore:
    """Create the document store selected by ``HS_STORE_BACKEND``."""
    store = DocumentStoreFactory.create_from_config({
        "type": config.hs_store_backend,
        "dsn": config.hs_database_dsn,
        "write_dsn": config.hs_database_write_dsn,
        "pool_size": config.hs_database_pool_size,
        "command_timeout": config.hs_database_command_timeout,
        "vector_dimension": config.hs_embedding_dimension,
    })
    logger.info("Document store created", backend=config.hs_store_backend)
    return store
