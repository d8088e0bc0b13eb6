from __future__ import annotations

import pytest

from smolder_interact import mcp_server
from smolder_interact.service import InteractionService


def test_normalize_params_maps_values_to_text() -> None:
    normalized = mcp_server._normalize_params(
        {"to": "0xabc", "flag": True, "off": False, "skip": None, "ids": [1, 2], "pair": {"a": 1}, 3: 7}
    )
    assert normalized == {
        "to": "0xabc",
        "flag": "true",
        "off": "false",
        "skip": "",
        "ids": "[1, 2]",
        "pair": '{"a": 1}',
        "3": "7",
    }


def test_normalize_params_none_is_empty() -> None:
    assert mcp_server._normalize_params(None) == {}


@pytest.mark.parametrize("value", [["a=1"], "a=1", 5])
def test_normalize_params_rejects_non_mappings(value) -> None:
    with pytest.raises(ValueError, match="params must be an object"):
        mcp_server._normalize_params(value)


@pytest.fixture()
def live_service(monkeypatch: pytest.MonkeyPatch, config, client, scheduler) -> InteractionService:
    service = InteractionService(config, client=client, scheduler=scheduler)
    monkeypatch.setattr(mcp_server, "_service", service)
    return service


def test_call_function_tool_normalizes_params(live_service, client) -> None:
    client.functions = {
        "read": [
            {
                "name": "pick",
                "inputs": [
                    {"name": "ids", "param_type": "uint256[]"},
                    {"name": "strict", "param_type": "bool"},
                ],
                "state_mutability": "view",
            }
        ],
        "write": [],
    }
    client.call_result = "ok"

    result = mcp_server.call_function(3, "pick", {"ids": [1, 2], "strict": True})

    assert result == {"success": True, "mode": "read", "result": "ok"}
    assert client.calls == [(3, {"function_name": "pick", "params": [["1", "2"], True]})]


def test_lookup_tools(live_service) -> None:
    assert mcp_server.get_network("anvil")["chain_id"] == 31337
    assert mcp_server.list_contracts() == {"contracts": [{"id": 1, "name": "Token"}]}
    assert mcp_server.list_contracts("Vault") == {"id": 1, "name": "Vault"}
    assert mcp_server.server_health() == {"status": "ok"}
