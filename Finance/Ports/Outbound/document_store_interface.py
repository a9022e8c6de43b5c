from pydantic import BaseModel, ConfigDict
from abc import abstractmethod
from typing import Any, Dict, List, Optional


class DocumentStore(BaseModel):
    """Keyed document storage partitioned into named collections."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    @abstractmethod
    async def connect(self):
        ...

    @abstractmethod
    async def disconnect(self):
        ...

    @abstractmethod
    async def find(
        self,
        partition: str,
        filter: Dict[str, Any],
        sort: Optional[Dict[str, int]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def upsert(self, partition: str, filter: Dict[str, Any], record: Dict[str, Any]) -> bool:
        """Replace the whole matching record, or insert it."""
        ...
