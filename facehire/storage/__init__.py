from .sql_store import SQLDocumentStore

__all__ = ["SQLDocumentStore"]
