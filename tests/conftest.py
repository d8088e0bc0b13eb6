from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from smolder_interact.api_client import ApiError
from smolder_interact.config import Config


class FakeClient:
    """In-memory stand-in for SmolderClient that records every invocation."""

    def __init__(self) -> None:
        self.calls: List[Tuple[int, Dict[str, Any]]] = []
        self.sends: List[Tuple[int, Dict[str, Any]]] = []
        self.deploys: List[Dict[str, Any]] = []
        self.history_requests: List[int] = []
        self.function_requests: List[int] = []
        self.artifact_requests: List[str] = []
        self.call_result: Any = None
        self.send_result: Dict[str, Any] = {"tx_hash": "0xfeed", "history_id": 7}
        self.deploy_result: Dict[str, Any] = {
            "tx_hash": "0xd3p",
            "contract_address": "0xc0ffee",
            "deployment_id": 11,
        }
        self.history: List[Dict[str, Any]] = []
        self.functions: Dict[str, Any] = {"read": [], "write": []}
        self.artifact: Dict[str, Any] = {"name": "Token", "constructor": None}
        self.error: Optional[Exception] = None
        self.history_error: Optional[Exception] = None
        self.wallets: Dict[str, Dict[str, Any]] = {"dev": {"name": "dev", "address": "0xabc"}}
        self.created_wallets: List[Tuple[str, str]] = []

    def _maybe_fail(self) -> None:
        if self.error is not None:
            raise self.error

    def call(self, deployment_id: int, request: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append((deployment_id, request))
        self._maybe_fail()
        return {"result": self.call_result}

    def send(self, deployment_id: int, request: Dict[str, Any]) -> Dict[str, Any]:
        self.sends.append((deployment_id, request))
        self._maybe_fail()
        return dict(self.send_result)

    def deploy(self, request: Dict[str, Any]) -> Dict[str, Any]:
        self.deploys.append(request)
        self._maybe_fail()
        return dict(self.deploy_result)

    def list_history(self, deployment_id: int) -> List[Dict[str, Any]]:
        self.history_requests.append(deployment_id)
        if self.history_error is not None:
            raise self.history_error
        return [dict(entry) for entry in self.history]

    def list_functions(self, deployment_id: int) -> Dict[str, Any]:
        self.function_requests.append(deployment_id)
        return self.functions

    def get_artifact_details(self, name: str) -> Dict[str, Any]:
        self.artifact_requests.append(name)
        if self.error is not None:
            raise self.error
        return self.artifact

    def list_networks(self) -> List[Dict[str, Any]]:
        return [{"id": 1, "name": "anvil", "chain_id": 31337}]

    def health(self) -> Dict[str, Any]:
        return {"status": "ok"}

    def get_network(self, name: str) -> Dict[str, Any]:
        return {"id": 1, "name": name, "chain_id": 31337}

    def list_contracts(self) -> List[Dict[str, Any]]:
        return [{"id": 1, "name": "Token"}]

    def get_contract(self, name: str) -> Dict[str, Any]:
        return {"id": 1, "name": name}

    def list_wallets(self) -> List[Dict[str, Any]]:
        return list(self.wallets.values())

    def get_wallet(self, name: str) -> Dict[str, Any]:
        return self.wallets[name]

    def create_wallet(self, name: str, private_key: str) -> Dict[str, Any]:
        self.created_wallets.append((name, private_key))
        self.wallets[name] = {"name": name, "address": "0xnew"}
        return self.wallets[name]

    def remove_wallet(self, name: str) -> None:
        self.wallets.pop(name, None)

    def list_deployments(self, network: Optional[str] = None) -> List[Dict[str, Any]]:
        return [{"id": 3, "contract_name": "Token", "network_name": network or "anvil"}]

    def get_deployment(self, contract: str, network: str) -> Dict[str, Any]:
        return {"id": 3, "contract_name": contract, "network_name": network}

    def list_artifacts(self) -> List[Dict[str, Any]]:
        return [{"name": "Token", "has_constructor": True}]


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.fired = True
        self.callback()


class FakeScheduler:
    """Collects scheduled callbacks so tests decide when time passes."""

    def __init__(self) -> None:
        self.timers: List[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    def pending(self) -> List[FakeTimer]:
        return [timer for timer in self.timers if not timer.fired and not timer.cancelled]

    def run_pending(self) -> int:
        due = self.pending()
        for timer in due:
            timer.fire()
        return len(due)


@pytest.fixture()
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture()
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture()
def config() -> Config:
    return Config(api_url="http://smolder.test/api")


@pytest.fixture()
def api_error() -> Callable[[str, int], ApiError]:
    return lambda message, status=400: ApiError(message, status)
