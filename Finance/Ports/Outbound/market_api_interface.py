from pydantic import BaseModel, ConfigDict
from abc import abstractmethod
from typing import Any, Dict


class MarketDataApi(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    @abstractmethod
    async def query(self, params: Dict[str, str]) -> Dict[str, Any]:
        """Issue one request and return the decoded JSON object."""
        ...

    @abstractmethod
    async def close(self):
        ...
