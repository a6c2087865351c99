import pytest

from cli import build_parser

WALLET = "0x1111111111111111111111111111111111111111"
RECIPIENT = "0x2222222222222222222222222222222222222222"


def test_routes_defaults_to_arbitrum_to_base():
    args = build_parser().parse_args(["routes", WALLET, RECIPIENT, "10.00"])

    assert args.from_chain == 42161
    assert args.to_chain == 8453
    assert args.to_token == "USDC"
    assert args.receive is False


def test_routes_rejects_unsupported_chain():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["routes", WALLET, RECIPIENT, "10", "--to-chain", "56"])


def test_routes_help_lists_receive_tokens(capsys):
    with pytest.raises(SystemExit):
        build_parser().parse_args(["routes", "--help"])

    out = capsys.readouterr().out
    assert "USDC" in out
    assert "WBTC" in out


def test_status_accepts_any_chain():
    args = build_parser().parse_args(["status", "0xabc", "--from-chain", "56"])

    assert args.from_chain == 56
    assert args.bridge is None
