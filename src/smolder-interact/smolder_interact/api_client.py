import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    """Non-2xx response from the Smolder API; ``str(exc)`` is the body text."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


class SmolderClient:
    """Thin wrapper around the Smolder HTTP API with basic retry."""

    def __init__(
        self,
        base_url: str,
        timeout: int = 10,
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, int(max_retries))
        self.backoff_seconds = backoff_seconds
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/health")

    def list_networks(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/networks")

    def get_network(self, name: str) -> Dict[str, Any]:
        return self._request("GET", f"/networks/{_segment(name)}")

    def list_contracts(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/contracts")

    def get_contract(self, name: str) -> Dict[str, Any]:
        return self._request("GET", f"/contracts/{_segment(name)}")

    def list_deployments(self, network: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"network": network} if network else None
        return self._request("GET", "/deployments", params=params)

    def get_deployment(self, contract: str, network: str) -> Dict[str, Any]:
        return self._request("GET", f"/deployments/{_segment(contract)}/{_segment(network)}")

    def list_functions(self, deployment_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/deployments/{_segment(deployment_id)}/functions")

    def call(self, deployment_id: int, request: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", f"/deployments/{_segment(deployment_id)}/call", json=request)

    def send(self, deployment_id: int, request: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", f"/deployments/{_segment(deployment_id)}/send", json=request)

    def list_history(self, deployment_id: int) -> List[Dict[str, Any]]:
        return self._request("GET", f"/deployments/{_segment(deployment_id)}/history")

    def list_wallets(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/wallets")

    def get_wallet(self, name: str) -> Dict[str, Any]:
        return self._request("GET", f"/wallets/{_segment(name)}")

    def create_wallet(self, name: str, private_key: str) -> Dict[str, Any]:
        return self._request("POST", "/wallets", json={"name": name, "private_key": private_key})

    def remove_wallet(self, name: str) -> None:
        self._request("DELETE", f"/wallets/{_segment(name)}")

    def list_artifacts(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/artifacts")

    def get_artifact_details(self, name: str) -> Dict[str, Any]:
        return self._request("GET", f"/artifacts/{_segment(name)}")

    def deploy(self, request: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/deploy", json=request)

    def _raise_for_response(self, response: requests.Response) -> None:
        if response.ok:
            return
        text = (response.text or "").strip()
        raise ApiError(text or f"API error: {response.status_code}", response.status_code)

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        # POSTs create history rows or transactions on the backend; never replay them.
        retryable = method in ("GET", "DELETE")
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                response = self.session.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    timeout=self.timeout,
                )
                if response.status_code >= 500 and retryable and attempt < self.max_retries:
                    logger.debug("%s %s -> %s, retrying", method, url, response.status_code)
                    time.sleep(self.backoff_seconds * attempt)
                    continue

                self._raise_for_response(response)
                if response.status_code == 204 or not response.content:
                    return None
                return response.json()
            except requests.RequestException as exc:
                last_error = exc
                if retryable and attempt < self.max_retries:
                    logger.debug("%s %s failed (%s), retrying", method, url, exc)
                    time.sleep(self.backoff_seconds * attempt)
                else:
                    raise

        if last_error:
            raise last_error

        raise RuntimeError("Request failed without raising an exception.")
