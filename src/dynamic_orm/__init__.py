"""dynamic-orm: table models compiling declarative queries to parameterized SQL."""

from __future__ import annotations

from .adapters import (
    InMemoryCacheBackend,
    NullCacheBackend,
    RedisCacheBackend,
    SQLAlchemyDatabaseBackend,
    uuid4_generator,
)
from .config import ModelOptions
from .exceptions import (
    CacheBackendError,
    ConfigurationError,
    DynamicORMError,
    InfrastructureError,
    ValidationError,
)
from .factory import ORM, create_orm
from .model import DynamicModel
from .ports import (
    ICacheBackend,
    IDatabaseBackend,
    IdGenerator,
    ILogger,
    ITransactionConnection,
    Row,
)
from .query import (
    LegacyFilterCall,
    PaginationMeta,
    PaginationSpec,
    QueryResult,
    QuerySpec,
    RelationSpec,
)
from .transactions import TransactionalModel

__version__ = "1.0.2"

__all__ = [
    "ORM",
    "CacheBackendError",
    "ConfigurationError",
    "DynamicModel",
    "DynamicORMError",
    "ICacheBackend",
    "IDatabaseBackend",
    "ILogger",
    "ITransactionConnection",
    "IdGenerator",
    "InMemoryCacheBackend",
    "InfrastructureError",
    "LegacyFilterCall",
    "ModelOptions",
    "NullCacheBackend",
    "PaginationMeta",
    "PaginationSpec",
    "QueryResult",
    "QuerySpec",
    "RedisCacheBackend",
    "RelationSpec",
    "Row",
    "SQLAlchemyDatabaseBackend",
    "TransactionalModel",
    "ValidationError",
    "create_orm",
    "uuid4_generator",
]
