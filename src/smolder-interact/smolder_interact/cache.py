from typing import Dict, Optional

from .schema import FunctionCatalog


class SchemaCache:
    """Simple in-memory cache of function catalogs keyed by API url + deployment id."""

    def __init__(self) -> None:
        self._memory: Dict[str, FunctionCatalog] = {}

    def _key(self, api_url: str, deployment_id: int) -> str:
        return f"{api_url.rstrip('/')}:{deployment_id}"

    def get(self, api_url: str, deployment_id: int) -> Optional[FunctionCatalog]:
        return self._memory.get(self._key(api_url, deployment_id))

    def set(self, api_url: str, deployment_id: int, catalog: FunctionCatalog) -> None:
        self._memory[self._key(api_url, deployment_id)] = catalog

    def invalidate(self, api_url: str, deployment_id: int) -> None:
        self._memory.pop(self._key(api_url, deployment_id), None)
