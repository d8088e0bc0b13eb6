from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence

from .marshal import marshal_params
from .schema import ArtifactDetails, ConstructorSchema, FunctionSchema, Mode, ParamSchema

logger = logging.getLogger(__name__)

MISSING_WALLET_MESSAGE = "Please select a wallet"
UNKNOWN_ERROR_MESSAGE = "Unknown error"
DEPLOY_FAILED_MESSAGE = "Deployment failed"


class DispatchState(enum.Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class CallOutcome:
    ok: bool
    mode: Mode
    payload: Any = None
    tx_hash: Optional[str] = None
    history_id: Optional[int] = None
    message: Optional[str] = None

    @classmethod
    def read_success(cls, payload: Any) -> "CallOutcome":
        return cls(ok=True, mode=Mode.READ, payload=payload)

    @classmethod
    def write_success(cls, tx_hash: str, history_id: Optional[int] = None) -> "CallOutcome":
        return cls(ok=True, mode=Mode.WRITE, tx_hash=tx_hash, history_id=history_id)

    @classmethod
    def failure(cls, mode: Mode, message: str) -> "CallOutcome":
        return cls(ok=False, mode=mode, message=message)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.ok, "mode": self.mode.value}
        if not self.ok:
            data["error"] = self.message
        elif self.mode is Mode.READ:
            data["result"] = self.payload
        else:
            data["tx_hash"] = self.tx_hash
            data["history_id"] = self.history_id
        return data


@dataclass(frozen=True)
class DeployOutcome:
    ok: bool
    tx_hash: Optional[str] = None
    contract_address: Optional[str] = None
    deployment_id: Optional[int] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.ok:
            return {"success": False, "error": self.message}
        return {
            "success": True,
            "tx_hash": self.tx_hash,
            "contract_address": self.contract_address,
            "deployment_id": self.deployment_id,
        }


def _error_message(exc: BaseException, fallback: str) -> str:
    text = str(exc).strip()
    return text or fallback


class InteractionDispatcher:
    """
    Route one function invocation of a deployment to ``call`` or ``send``.

    Each ``dispatch`` replaces the previous outcome. Concurrent dispatches are
    not serialized here; callers should not resubmit while ``state`` is
    ``SUBMITTING``.
    """

    def __init__(self, client: Any, deployment_id: int, reconciler: Any = None) -> None:
        self.client = client
        self.deployment_id = deployment_id
        self.reconciler = reconciler
        self.state = DispatchState.IDLE
        self.last_outcome: Optional[CallOutcome] = None

    @property
    def submitting(self) -> bool:
        return self.state is DispatchState.SUBMITTING

    def reset(self) -> None:
        self.state = DispatchState.IDLE
        self.last_outcome = None

    def dispatch(
        self,
        mode: Mode,
        function_name: str,
        schemas: Sequence[ParamSchema],
        inputs: Optional[Mapping[str, str]] = None,
        wallet: Optional[str] = None,
        value: Optional[str] = None,
    ) -> CallOutcome:
        self.state = DispatchState.SUBMITTING
        self.last_outcome = None
        try:
            outcome = self._execute(mode, function_name, schemas, inputs, wallet, value)
        except BaseException:
            self.state = DispatchState.FAILED
            raise
        self.last_outcome = outcome
        self.state = DispatchState.SUCCEEDED if outcome.ok else DispatchState.FAILED

        if outcome.ok and mode is Mode.WRITE and self.reconciler is not None:
            self.reconciler.schedule_refresh(self.deployment_id, outcome.history_id)
        return outcome

    def invoke(
        self,
        function: FunctionSchema,
        inputs: Optional[Mapping[str, str]] = None,
        wallet: Optional[str] = None,
        value: Optional[str] = None,
    ) -> CallOutcome:
        return self.dispatch(
            function.mode,
            function.name,
            function.inputs,
            inputs,
            wallet=wallet,
            value=value if function.is_payable else None,
        )

    def _execute(
        self,
        mode: Mode,
        function_name: str,
        schemas: Sequence[ParamSchema],
        inputs: Optional[Mapping[str, str]],
        wallet: Optional[str],
        value: Optional[str],
    ) -> CallOutcome:
        if mode is Mode.WRITE and not (wallet or "").strip():
            logger.info("Rejected %s on deployment %s: no wallet", function_name, self.deployment_id)
            return CallOutcome.failure(mode, MISSING_WALLET_MESSAGE)

        try:
            params = marshal_params(schemas, inputs)
            logger.debug(
                "Dispatching %s %s(%s) on deployment %s", mode.value, function_name, params, self.deployment_id
            )
            if mode is Mode.READ:
                response = self.client.call(
                    self.deployment_id, {"function_name": function_name, "params": params}
                )
                return CallOutcome.read_success((response or {}).get("result"))

            request: Dict[str, Any] = {
                "function_name": function_name,
                "params": params,
                "wallet_name": wallet.strip(),
            }
            if value:
                request["value"] = value
            response = self.client.send(self.deployment_id, request) or {}
            return CallOutcome.write_success(response.get("tx_hash"), response.get("history_id"))
        except Exception as exc:  # pylint: disable=broad-except
            logger.info("%s %s on deployment %s failed: %s", mode.value, function_name, self.deployment_id, exc)
            return CallOutcome.failure(mode, _error_message(exc, UNKNOWN_ERROR_MESSAGE))


class Deployer:
    """Build and submit a deployment transaction from constructor inputs."""

    def __init__(self, client: Any) -> None:
        self.client = client
        self.state = DispatchState.IDLE
        self.last_outcome: Optional[DeployOutcome] = None

    def deploy(
        self,
        artifact_name: str,
        network: str,
        wallet: str,
        inputs: Optional[Mapping[str, str]] = None,
        value: Optional[str] = None,
        constructor: Optional[ConstructorSchema] = None,
    ) -> DeployOutcome:
        self.state = DispatchState.SUBMITTING
        self.last_outcome = None
        try:
            outcome = self._execute(artifact_name, network, wallet, inputs, value, constructor)
        except BaseException:
            self.state = DispatchState.FAILED
            raise
        self.last_outcome = outcome
        self.state = DispatchState.SUCCEEDED if outcome.ok else DispatchState.FAILED
        return outcome

    def _execute(
        self,
        artifact_name: str,
        network: str,
        wallet: str,
        inputs: Optional[Mapping[str, str]],
        value: Optional[str],
        constructor: Optional[ConstructorSchema],
    ) -> DeployOutcome:
        for label, field_value in (("an artifact", artifact_name), ("a network", network), ("a wallet", wallet)):
            if not (field_value or "").strip():
                return DeployOutcome(ok=False, message=f"Please select {label}")

        try:
            if constructor is None:
                details = ArtifactDetails.from_dict(self.client.get_artifact_details(artifact_name))
                constructor = details.constructor
            schemas = constructor.inputs if constructor else ()
            request: Dict[str, Any] = {
                "artifact_name": artifact_name,
                "network_name": network,
                "wallet_name": wallet,
                "constructor_args": marshal_params(schemas, inputs),
            }
            if value and constructor is not None and constructor.is_payable:
                request["value"] = value
            logger.debug("Deploying %s to %s", artifact_name, network)
            response = self.client.deploy(request) or {}
        except Exception as exc:  # pylint: disable=broad-except
            logger.info("Deployment of %s to %s failed: %s", artifact_name, network, exc)
            return DeployOutcome(ok=False, message=_error_message(exc, DEPLOY_FAILED_MESSAGE))

        return DeployOutcome(
            ok=True,
            tx_hash=response.get("tx_hash"),
            contract_address=response.get("contract_address"),
            deployment_id=response.get("deployment_id"),
        )
