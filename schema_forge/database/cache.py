"""
In-memory schema cache for the active connection
"""

import logging
import threading
from typing import Optional

from ..errors import NoSchemaIndexed
from .models import SchemaModel

logger = logging.getLogger(__name__)


class SchemaCache:
    """Holds the most recent SchemaModel for one connection.

    The model is only ever replaced as a whole; there is no way to patch
    a cached model in place.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._model: Optional[SchemaModel] = None
        self._connection_url: Optional[str] = None

    def bind(self, connection_url: Optional[str]) -> None:
        """Attach the cache to a connection, dropping a model built for another one"""
        with self._lock:
            if connection_url != self._connection_url:
                if self._model is not None:
                    logger.info("Connection changed, schema cache invalidated")
                self._model = None
                self._connection_url = connection_url

    @property
    def connection_url(self) -> Optional[str]:
        return self._connection_url

    def set(self, model: SchemaModel) -> None:
        with self._lock:
            self._model = model

    def get(self) -> SchemaModel:
        model = self._model
        if model is None:
            raise NoSchemaIndexed()
        return model

    def peek(self) -> Optional[SchemaModel]:
        return self._model

    @property
    def is_indexed(self) -> bool:
        return self._model is not None
