import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .api_client import SmolderClient
from .cache import SchemaCache
from .config import Config
from .dispatcher import CallOutcome, Deployer, DeployOutcome, InteractionDispatcher
from .history import HistoryBoard, HistoryReconciler, Scheduler
from .marshal import degraded_params, describe_params
from .schema import ArtifactDetails, FunctionCatalog, FunctionSchema

logger = logging.getLogger(__name__)


def parse_param_assignments(assignments: Optional[Sequence[str]]) -> Dict[str, str]:
    """Turn ``["name=value", ...]`` into a raw input map; later entries win."""
    inputs: Dict[str, str] = {}
    for item in assignments or []:
        if "=" not in item:
            raise ValueError(f"Parameter '{item}' must look like name=value.")
        name, value = item.split("=", 1)
        name = name.strip()
        if not name:
            raise ValueError(f"Parameter '{item}' has an empty name.")
        inputs[name] = value
    return inputs


class InteractionService:
    """Combine configuration, client, cache and dispatchers to serve contract interactions."""

    def __init__(
        self,
        config: Config,
        client: Optional[Any] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.config = config
        self.cache = SchemaCache()
        self.history = HistoryBoard()
        self.client = client or SmolderClient(
            base_url=config.api_url,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            backoff_seconds=config.backoff_seconds,
        )
        self.reconciler = HistoryReconciler(
            self.client,
            self.history.replace,
            delay=config.history_delay_seconds,
            poll_interval=config.history_poll_interval_seconds,
            poll_timeout=config.history_poll_timeout_seconds,
            scheduler=scheduler,
        )
        self.deployer = Deployer(self.client)
        self._dispatchers: Dict[int, InteractionDispatcher] = {}

    def close(self) -> None:
        self.reconciler.close()

    def dispatcher_for(self, deployment_id: int) -> InteractionDispatcher:
        dispatcher = self._dispatchers.get(deployment_id)
        if dispatcher is None:
            dispatcher = InteractionDispatcher(self.client, deployment_id, self.reconciler)
            self._dispatchers[deployment_id] = dispatcher
        return dispatcher

    def get_functions(self, deployment_id: int, refresh: bool = False) -> FunctionCatalog:
        if not refresh:
            cached = self.cache.get(self.config.api_url, deployment_id)
            if cached is not None:
                return cached
        catalog = FunctionCatalog.from_dict(self.client.list_functions(deployment_id) or {})
        self.cache.set(self.config.api_url, deployment_id, catalog)
        return catalog

    def find_function(self, deployment_id: int, function_name: str) -> FunctionSchema:
        function, _ = self.get_functions(deployment_id).find(function_name)
        return function

    def describe_function(self, deployment_id: int, function_name: str) -> Dict[str, Any]:
        function = self.find_function(deployment_id, function_name)
        return {
            "deployment_id": deployment_id,
            "name": function.name,
            "signature": function.signature,
            "mode": function.mode.value,
            "state_mutability": function.state_mutability,
            "payable": function.is_payable,
            "inputs": describe_params(function.inputs),
            "outputs": [param.to_dict() for param in function.outputs],
        }

    def invoke(
        self,
        deployment_id: int,
        function_name: str,
        inputs: Optional[Mapping[str, str]] = None,
        wallet: Optional[str] = None,
        value: Optional[str] = None,
    ) -> CallOutcome:
        function = self.find_function(deployment_id, function_name)
        degraded = degraded_params(function.inputs, inputs)
        if degraded:
            logger.warning(
                "Sending %s for %s as raw text: not valid JSON for its type", ", ".join(degraded), function_name
            )
        return self.dispatcher_for(deployment_id).invoke(function, inputs, wallet=wallet, value=value)

    def invoke_and_wait(
        self,
        deployment_id: int,
        function_name: str,
        inputs: Optional[Mapping[str, str]] = None,
        wallet: Optional[str] = None,
        value: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[CallOutcome, Optional[List[Dict[str, Any]]]]:
        """Invoke, then block until the scheduled history refresh lands (writes only)."""
        since = time.time()
        outcome = self.invoke(deployment_id, function_name, inputs, wallet=wallet, value=value)
        if not outcome.ok or outcome.tx_hash is None:
            return outcome, None
        wait = timeout if timeout is not None else self.config.history_delay_seconds + self.config.request_timeout
        if not self.history.wait_for_update(deployment_id, since, wait):
            return outcome, None
        return outcome, self.history.get(deployment_id)

    def deploy(
        self,
        artifact_name: str,
        network: str,
        wallet: str,
        inputs: Optional[Mapping[str, str]] = None,
        value: Optional[str] = None,
    ) -> DeployOutcome:
        outcome = self.deployer.deploy(artifact_name, network, wallet, inputs, value=value)
        if outcome.ok and outcome.deployment_id is not None:
            self.cache.invalidate(self.config.api_url, outcome.deployment_id)
        return outcome

    def get_artifact(self, name: str) -> Dict[str, Any]:
        details = ArtifactDetails.from_dict(self.client.get_artifact_details(name))
        return {
            "name": details.name,
            "source_path": details.source_path,
            "has_bytecode": details.has_bytecode,
            "in_registry": details.in_registry,
            "payable": details.is_payable,
            "constructor": describe_params(details.constructor_inputs) if details.constructor else None,
        }

    def get_history(self, deployment_id: int) -> List[Dict[str, Any]]:
        entries = list(self.client.list_history(deployment_id) or [])
        self.history.replace(deployment_id, entries)
        return entries

    def resolve_deployment(self, contract: str, network: str) -> Dict[str, Any]:
        return self.client.get_deployment(contract, network)

    def list_deployments(self, network: Optional[str] = None) -> List[Dict[str, Any]]:
        return self.client.list_deployments(network)

    def health(self) -> Dict[str, Any]:
        return self.client.health()

    def list_networks(self) -> List[Dict[str, Any]]:
        return self.client.list_networks()

    def get_network(self, name: str) -> Dict[str, Any]:
        return self.client.get_network(name)

    def list_contracts(self) -> List[Dict[str, Any]]:
        return self.client.list_contracts()

    def get_contract(self, name: str) -> Dict[str, Any]:
        return self.client.get_contract(name)

    def list_wallets(self) -> List[Dict[str, Any]]:
        return self.client.list_wallets()

    def get_wallet(self, name: str) -> Dict[str, Any]:
        return self.client.get_wallet(name)

    def add_wallet(self, name: str, private_key: str) -> Dict[str, Any]:
        name = (name or "").strip()
        private_key = (private_key or "").strip()
        if not name:
            raise ValueError("Wallet name is required.")
        if not private_key:
            raise ValueError("Private key is required.")
        return self.client.create_wallet(name, private_key)

    def remove_wallet(self, name: str) -> None:
        self.client.remove_wallet(name)

    def list_artifacts(self) -> List[Dict[str, Any]]:
        return self.client.list_artifacts()
