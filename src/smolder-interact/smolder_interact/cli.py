import argparse
import json
import os
import sys
from typing import Any, Optional

from .config import configure_logging, load_config
from .service import InteractionService, parse_param_assignments

WALLET_KEY_ENV = "SMOLDER_WALLET_KEY"


def _add_param_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Parameter value; repeat per parameter. Arrays and tuples take a JSON literal.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Call, send and deploy smart contracts through a Smolder server.",
        allow_abbrev=False,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    functions_parser = subparsers.add_parser("functions", help="List read/write functions of a deployment")
    functions_parser.add_argument("--deployment", required=True, type=int, help="Deployment id.")
    functions_parser.add_argument(
        "--function",
        required=False,
        help="Describe a single function with input placeholders.",
    )

    call_parser = subparsers.add_parser("call", help="Call a read-only function")
    call_parser.add_argument("--deployment", required=True, type=int, help="Deployment id.")
    call_parser.add_argument("--function", required=True, help="Function name.")
    _add_param_argument(call_parser)

    send_parser = subparsers.add_parser("send", help="Send a transaction to a write function")
    send_parser.add_argument("--deployment", required=True, type=int, help="Deployment id.")
    send_parser.add_argument("--function", required=True, help="Function name.")
    send_parser.add_argument("--wallet", required=False, default="", help="Wallet name used to sign.")
    send_parser.add_argument(
        "--value",
        required=False,
        help="Wei to attach (payable functions only).",
    )
    send_parser.add_argument(
        "--wait-history",
        action="store_true",
        help="Wait for the scheduled history refresh and print it.",
    )
    _add_param_argument(send_parser)

    history_parser = subparsers.add_parser("history", help="Show call history of a deployment")
    history_parser.add_argument("--deployment", required=True, type=int, help="Deployment id.")

    deploy_parser = subparsers.add_parser("deploy", help="Deploy an artifact")
    deploy_parser.add_argument("--artifact", required=True, help="Artifact (contract) name.")
    deploy_parser.add_argument("--network", required=True, help="Network name.")
    deploy_parser.add_argument("--wallet", required=True, help="Wallet name used to sign.")
    deploy_parser.add_argument(
        "--value",
        required=False,
        help="Wei to attach (payable constructors only).",
    )
    _add_param_argument(deploy_parser)

    artifact_parser = subparsers.add_parser("artifact", help="Show an artifact's constructor")
    artifact_parser.add_argument("--name", required=True, help="Artifact name.")

    subparsers.add_parser("health", help="Check that the Smolder server is up")

    networks_parser = subparsers.add_parser("networks", help="List networks")
    networks_parser.add_argument("--name", required=False, help="Show a single network.")

    contracts_parser = subparsers.add_parser("contracts", help="List contracts known to the server")
    contracts_parser.add_argument("--name", required=False, help="Show a single contract.")

    wallets_parser = subparsers.add_parser("wallets", help="List wallets")
    wallets_parser.add_argument("--name", required=False, help="Show a single wallet.")

    wallet_add_parser = subparsers.add_parser("wallet-add", help="Store a signing wallet on the server")
    wallet_add_parser.add_argument("--name", required=True, help="Wallet name.")
    wallet_add_parser.add_argument(
        "--key-env",
        default=WALLET_KEY_ENV,
        help=f"Environment variable holding the private key (default: {WALLET_KEY_ENV}).",
    )

    wallet_remove_parser = subparsers.add_parser("wallet-remove", help="Remove a stored wallet")
    wallet_remove_parser.add_argument("--name", required=True, help="Wallet name.")

    deployments_parser = subparsers.add_parser("deployments", help="List deployments")
    deployments_parser.add_argument(
        "--network",
        required=False,
        help="Only list deployments on this network.",
    )
    deployments_parser.add_argument(
        "--contract",
        required=False,
        help="Resolve the current deployment of this contract (requires --network).",
    )

    return parser


def _print(result: Any) -> None:
    print(json.dumps(result, indent=2))


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    service: Optional[InteractionService] = None
    try:
        config = load_config()
        configure_logging(config.log_level)
        service = InteractionService(config)

        if args.command == "functions":
            if args.function:
                _print(service.describe_function(args.deployment, args.function))
            else:
                _print(service.get_functions(args.deployment).to_dict())
        elif args.command in ("call", "send"):
            inputs = parse_param_assignments(args.param)
            function = service.find_function(args.deployment, args.function)
            if args.command == "call" and not function.is_read:
                raise ValueError(f"Function '{args.function}' is not a read function. Use send.")
            if args.command == "send" and function.is_read:
                raise ValueError(f"Function '{args.function}' is a read function. Use call.")

            if args.command == "send" and args.wait_history:
                outcome, history = service.invoke_and_wait(
                    args.deployment, args.function, inputs, wallet=args.wallet, value=args.value
                )
                result = outcome.to_dict()
                if history is not None:
                    result["history"] = history
            else:
                wallet = args.wallet if args.command == "send" else None
                value = args.value if args.command == "send" else None
                outcome = service.invoke(args.deployment, args.function, inputs, wallet=wallet, value=value)
                result = outcome.to_dict()
            _print(result)
            if not outcome.ok:
                sys.exit(1)
        elif args.command == "history":
            _print(service.get_history(args.deployment))
        elif args.command == "deploy":
            inputs = parse_param_assignments(args.param)
            outcome = service.deploy(args.artifact, args.network, args.wallet, inputs, value=args.value)
            _print(outcome.to_dict())
            if not outcome.ok:
                sys.exit(1)
        elif args.command == "artifact":
            _print(service.get_artifact(args.name))
        elif args.command == "health":
            _print(service.health())
        elif args.command == "networks":
            _print(service.get_network(args.name) if args.name else service.list_networks())
        elif args.command == "contracts":
            _print(service.get_contract(args.name) if args.name else service.list_contracts())
        elif args.command == "wallets":
            _print(service.get_wallet(args.name) if args.name else service.list_wallets())
        elif args.command == "wallet-add":
            private_key = os.getenv(args.key_env, "")
            if not private_key.strip():
                raise ValueError(f"Set {args.key_env} to the wallet's private key.")
            _print(service.add_wallet(args.name, private_key))
        elif args.command == "wallet-remove":
            service.remove_wallet(args.name)
            _print({"removed": args.name})
        elif args.command == "deployments":
            if args.contract:
                if not args.network:
                    raise ValueError("--contract requires --network.")
                _print(service.resolve_deployment(args.contract, args.network))
            else:
                _print(service.list_deployments(args.network))
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    finally:
        if service is not None:
            service.close()


if __name__ == "__main__":
    main()
