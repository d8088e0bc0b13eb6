"""
MCP server exposing contract call/send/deploy through a Smolder backend.
"""

import argparse
import json
from collections.abc import Mapping
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP

from .config import configure_logging, load_config
from .service import InteractionService

server = FastMCP(
    name="smolder-interact",
    instructions="Inspect, call, send and deploy smart contracts managed by a Smolder server.",
)

_service: Optional[InteractionService] = None


def _get_service() -> InteractionService:
    global _service
    if _service is None:
        cfg = load_config()
        configure_logging(cfg.log_level)
        _service = InteractionService(cfg)
    return _service


def _normalize_params(value: Optional[Any], name: str = "params") -> dict:
    """
    Raw parameter inputs are a name -> text map:
    - None: no parameters
    - Mapping: values that are not strings are serialized to JSON text
    - anything else is rejected
    """
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"{name} must be an object mapping parameter names to values.")
    normalized = {}
    for key, item in value.items():
        if isinstance(item, str):
            normalized[str(key)] = item
        elif isinstance(item, bool):
            normalized[str(key)] = "true" if item else "false"
        elif item is None:
            normalized[str(key)] = ""
        else:
            normalized[str(key)] = json.dumps(item)
    return normalized


@server.tool(
    name="list_functions",
    title="List Contract Functions",
    description="List read and write functions (inputs, outputs, state mutability) of a deployment.",
)
def list_functions(deployment_id: int) -> dict:
    svc = _get_service()
    return svc.get_functions(deployment_id).to_dict()


@server.tool(
    name="describe_function",
    title="Describe Function Inputs",
    description="Describe one function's inputs with example placeholders for each parameter type.",
)
def describe_function(deployment_id: int, function_name: str) -> dict:
    svc = _get_service()
    return svc.describe_function(deployment_id, function_name)


@server.tool(
    name="call_function",
    title="Call Read-Only Function",
    description="Call a view/pure function. `params` maps parameter names to text; arrays and tuples take JSON.",
)
def call_function(deployment_id: int, function_name: str, params: Optional[Any] = None) -> dict:
    svc = _get_service()
    return svc.invoke(deployment_id, function_name, _normalize_params(params)).to_dict()


@server.tool(
    name="send_transaction",
    title="Send Transaction",
    description="Send a signed transaction to a write function using a stored wallet. `value` is wei for payable functions.",
)
def send_transaction(
    deployment_id: int,
    function_name: str,
    wallet_name: str,
    params: Optional[Any] = None,
    value: Optional[str] = None,
) -> dict:
    svc = _get_service()
    outcome = svc.invoke(
        deployment_id, function_name, _normalize_params(params), wallet=wallet_name, value=value
    )
    return outcome.to_dict()


@server.tool(
    name="get_history",
    title="Get Call History",
    description="Fetch the call/transaction history of a deployment.",
)
def get_history(deployment_id: int) -> dict:
    svc = _get_service()
    return {"deployment_id": deployment_id, "history": svc.get_history(deployment_id)}


@server.tool(
    name="get_artifact",
    title="Get Artifact Constructor",
    description="Describe an artifact's constructor inputs and whether it accepts value.",
)
def get_artifact(name: str) -> dict:
    svc = _get_service()
    return svc.get_artifact(name)


@server.tool(
    name="deploy_contract",
    title="Deploy Contract",
    description="Deploy an artifact to a network using a stored wallet. `params` maps constructor inputs to text.",
)
def deploy_contract(
    artifact_name: str,
    network_name: str,
    wallet_name: str,
    params: Optional[Any] = None,
    value: Optional[str] = None,
) -> dict:
    svc = _get_service()
    outcome = svc.deploy(artifact_name, network_name, wallet_name, _normalize_params(params), value=value)
    return outcome.to_dict()


@server.tool(
    name="list_networks",
    title="List Networks",
    description="List networks configured on the Smolder server.",
)
def list_networks() -> dict:
    svc = _get_service()
    return {"networks": svc.list_networks()}


@server.tool(
    name="get_network",
    title="Get Network",
    description="Fetch one network (RPC URL, chain id) by name.",
)
def get_network(name: str) -> dict:
    svc = _get_service()
    return svc.get_network(name)


@server.tool(
    name="list_contracts",
    title="List Contracts",
    description="List contracts known to the Smolder server, or fetch one by name.",
)
def list_contracts(name: Optional[str] = None) -> dict:
    svc = _get_service()
    if name:
        return svc.get_contract(name)
    return {"contracts": svc.list_contracts()}


@server.tool(
    name="server_health",
    title="Server Health",
    description="Check that the Smolder server is reachable.",
)
def server_health() -> dict:
    svc = _get_service()
    return svc.health()


@server.tool(
    name="list_wallets",
    title="List Wallets",
    description="List wallets (name and address) available for signing.",
)
def list_wallets() -> dict:
    svc = _get_service()
    return {"wallets": svc.list_wallets()}


@server.tool(
    name="list_deployments",
    title="List Deployments",
    description="List deployments, optionally filtered by network name.",
)
def list_deployments(network: Optional[str] = None) -> dict:
    svc = _get_service()
    return {"deployments": svc.list_deployments(network)}


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Smolder interaction MCP server.")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default="stdio",
        help="Transport protocol for MCP.",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--mount-path",
        default="/",
        help="Mount path for SSE transport (only when transport=sse).",
    )
    args = parser.parse_args()

    # FastMCP uses host/port only for SSE/HTTP transports; stdio ignores them.
    server.settings.host = args.host
    server.settings.port = args.port

    if args.transport == "sse":
        server.run(transport="sse", mount_path=args.mount_path)
    else:
        server.run(transport=args.transport)


if __name__ == "__main__":
    main()
