from __future__ import annotations

import pytest

from smolder_interact.schema import FunctionCatalog, Mode, ParamSchema
from smolder_interact.service import InteractionService, parse_param_assignments

FUNCTIONS = {
    "read": [
        {
            "name": "balanceOf",
            "signature": "balanceOf(address)",
            "inputs": [{"name": "owner", "param_type": "address"}],
            "outputs": [{"name": "", "param_type": "uint256"}],
            "state_mutability": "view",
        }
    ],
    "write": [
        {
            "name": "batchTransfer",
            "signature": "batchTransfer((address,uint256)[])",
            "inputs": [
                {
                    "name": "transfers",
                    "param_type": "tuple[]",
                    "components": [
                        {"name": "to", "param_type": "address"},
                        {"name": "amount", "param_type": "uint256"},
                    ],
                }
            ],
            "outputs": [],
            "state_mutability": "payable",
        }
    ],
}


@pytest.fixture()
def service(config, client, scheduler) -> InteractionService:
    client.functions = FUNCTIONS
    return InteractionService(config, client=client, scheduler=scheduler)


def test_parse_param_assignments() -> None:
    assert parse_param_assignments(["a=1", "b=x=y", "a=2", "c="]) == {"a": "2", "b": "x=y", "c": ""}
    with pytest.raises(ValueError):
        parse_param_assignments(["novalue"])
    with pytest.raises(ValueError):
        parse_param_assignments(["=1"])


def test_function_catalog_parsing() -> None:
    catalog = FunctionCatalog.from_dict(FUNCTIONS)
    func, mode = catalog.find("batchTransfer")
    assert mode is Mode.WRITE
    assert func.is_payable
    assert func.inputs[0].fields == (ParamSchema("to", "address"), ParamSchema("amount", "uint256"))
    with pytest.raises(ValueError, match="not found"):
        catalog.find("missing")


def test_functions_are_cached(service, client) -> None:
    service.get_functions(3)
    service.get_functions(3)
    assert client.function_requests == [3]
    service.get_functions(3, refresh=True)
    assert client.function_requests == [3, 3]


def test_invoke_read(service, client) -> None:
    client.call_result = "100"
    outcome = service.invoke(3, "balanceOf", {"owner": "0xabc"})
    assert outcome.ok and outcome.payload == "100"
    assert client.calls == [(3, {"function_name": "balanceOf", "params": ["0xabc"]})]


def test_invoke_write_marshals_array_of_structures(service, client, scheduler) -> None:
    outcome = service.invoke(
        3,
        "batchTransfer",
        {"transfers": '[{"to": "0x1", "amount": 5}, {"to": "0x2"}]'},
        wallet="dev",
        value="10",
    )

    assert outcome.ok
    assert client.sends[0][1] == {
        "function_name": "batchTransfer",
        "params": [[{"to": "0x1", "amount": "5"}, {"to": "0x2", "amount": "0"}]],
        "wallet_name": "dev",
        "value": "10",
    }
    client.history = [{"id": 7, "status": "pending"}]
    scheduler.run_pending()
    assert service.history.get(3) == [{"id": 7, "status": "pending"}]


def test_invoke_unknown_function_raises(service) -> None:
    with pytest.raises(ValueError):
        service.invoke(3, "nope", {})


def test_describe_function(service) -> None:
    described = service.describe_function(3, "batchTransfer")
    assert described["mode"] == "write"
    assert described["payable"] is True
    assert described["inputs"] == [
        {
            "name": "transfers",
            "param_type": "tuple[]",
            "kind": "array",
            "placeholder": '[{"to": 0x..., "amount": 0}, ...]',
        }
    ]


def test_deploy_and_artifact(service, client) -> None:
    client.artifact = {
        "name": "Token",
        "source_path": "src/Token.sol",
        "constructor": {"inputs": [{"name": "supply", "param_type": "uint256"}], "state_mutability": "nonpayable"},
        "has_bytecode": True,
    }
    artifact = service.get_artifact("Token")
    assert artifact["payable"] is False
    assert artifact["constructor"][0]["name"] == "supply"

    outcome = service.deploy("Token", "anvil", "dev", {"supply": "1000"}, value="1")
    assert outcome.ok
    assert client.deploys[0]["constructor_args"] == ["1000"]
    assert "value" not in client.deploys[0]


def test_get_history_updates_board(service, client) -> None:
    client.history = [{"id": 1}]
    assert service.get_history(3) == [{"id": 1}]
    assert service.history.get(3) == [{"id": 1}]


def test_close_stops_pending_refresh(service, client, scheduler) -> None:
    service.invoke(3, "batchTransfer", {}, wallet="dev")
    service.close()
    scheduler.run_pending()
    assert client.history_requests == []


class SpentTimer:
    def cancel(self) -> None:
        pass


def immediate_scheduler(delay, callback):
    callback()
    return SpentTimer()


def test_invoke_and_wait_returns_refreshed_history(config, client) -> None:
    client.functions = FUNCTIONS
    client.history = [{"id": 7, "status": "Success"}]
    service = InteractionService(config, client=client, scheduler=immediate_scheduler)

    outcome, history = service.invoke_and_wait(3, "batchTransfer", {}, wallet="dev", timeout=1.0)

    assert outcome.ok and outcome.tx_hash == "0xfeed"
    assert history == [{"id": 7, "status": "Success"}]
    assert client.history_requests == [3]


def test_invoke_and_wait_gives_up_after_timeout(service, client) -> None:
    outcome, history = service.invoke_and_wait(3, "batchTransfer", {}, wallet="dev", timeout=0.01)
    assert outcome.ok
    assert history is None
    assert client.history_requests == []


def test_invoke_and_wait_skips_reads_and_failures(service, client) -> None:
    outcome, history = service.invoke_and_wait(3, "balanceOf", {"owner": "0x1"}, timeout=0.01)
    assert outcome.ok and history is None

    outcome, history = service.invoke_and_wait(3, "batchTransfer", {}, wallet="", timeout=0.01)
    assert not outcome.ok and history is None
    assert client.sends == []


def test_lookup_passthroughs(service) -> None:
    assert service.health() == {"status": "ok"}
    assert service.get_network("sepolia")["name"] == "sepolia"
    assert service.list_contracts() == [{"id": 1, "name": "Token"}]
    assert service.get_contract("Vault")["name"] == "Vault"
    assert service.get_wallet("dev")["address"] == "0xabc"


def test_add_and_remove_wallet(service, client) -> None:
    created = service.add_wallet(" ops ", " 0xkey ")
    assert created["name"] == "ops"
    assert client.created_wallets == [("ops", "0xkey")]

    service.remove_wallet("ops")
    assert [wallet["name"] for wallet in service.list_wallets()] == ["dev"]


@pytest.mark.parametrize("name, key", [("", "0xkey"), ("ops", "  ")])
def test_add_wallet_requires_name_and_key(service, client, name, key) -> None:
    with pytest.raises(ValueError):
        service.add_wallet(name, key)
    assert client.created_wallets == []
