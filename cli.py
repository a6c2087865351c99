#!/usr/bin/env python3
"""Simple CLI for trying PayFlow routing locally"""

import argparse
import asyncio
from typing import List, Optional

from payflow.config import settings
from payflow.core.payments.amounts import format_token_amount
from payflow.core.payments.balances import BalanceInventory
from payflow.core.payments.chain_registry import get_chain_registry
from payflow.core.payments.errors import PaymentError
from payflow.core.payments.intents import build_payment_intent
from payflow.core.payments.models import AmountMode, RouteOption
from payflow.core.payments.routes import RouteEngine
from payflow.core.payments.status import check_transfer_status
from payflow.providers.ens import EnsProvider
from payflow.providers.lifi import LifiProvider


def print_routes(routes: List[RouteOption]):
    """Pretty print ranked routes"""
    if not routes:
        print("❌ No route available for this transfer")
        return

    registry = get_chain_registry()
    print(f"\n🧭 {len(routes)} route(s)")
    print("=" * 60)
    for i, route in enumerate(routes, 1):
        tags = ", ".join(sorted(tag.value for tag in route.tags)) or "-"
        received = format_token_amount(route.destination_amount, route.to_token.decimals)
        minimum = format_token_amount(route.destination_amount_minimum, route.to_token.decimals)
        print(f"{i:2d}. [{tags}] {received} {route.to_token.symbol} (min {minimum})")
        print(f"    cost ${route.total_cost_usd:,.2f} · ~{route.total_duration_seconds}s")
        for leg in route.legs:
            chains = registry.get_chain_name(leg.from_chain_id)
            if leg.to_chain_id != leg.from_chain_id:
                chains = f"{chains} → {registry.get_chain_name(leg.to_chain_id)}"
            print(f"      - {leg.type.value:<8} {leg.tool_name} ({chains})")


async def cli_balances(address: str, chains: Optional[List[int]] = None):
    """CLI command to list wallet balances"""
    print(f"🔍 Fetching balances for {address}...")

    inventory = BalanceInventory(LifiProvider(), default_chain_ids=settings.balance_chain_ids)
    balances = await inventory.fetch_balances(address, chains)
    if not balances:
        print("❌ No balances found")
        return

    registry = get_chain_registry()
    for i, balance in enumerate(sorted(balances, key=lambda b: b.value_usd, reverse=True), 1):
        amount = format_token_amount(balance.amount_raw, balance.decimals)
        print(f"{i:2d}. {amount:>14} {balance.symbol:<8} ${balance.value_usd:>12,.2f}  {registry.get_chain_name(balance.chain_id)}")


async def cli_routes(args: argparse.Namespace):
    """CLI command to fetch ranked routes for a payment"""
    mode = AmountMode.EXACT_RECEIVE if args.receive else AmountMode.EXACT_SEND
    try:
        intent = await build_payment_intent(
            source_wallet_address=args.wallet,
            source_chain_id=args.from_chain,
            source_token=args.from_token,
            destination_chain_id=args.to_chain,
            destination_token=args.to_token,
            recipient=args.recipient,
            amount=args.amount,
            amount_mode=mode,
            slippage=args.slippage,
            resolver=EnsProvider(),
        )
        engine = RouteEngine(LifiProvider(), default_slippage=settings.default_slippage)
        routes = await engine.fetch_routes(intent)
    except PaymentError as e:
        print(f"❌ Error: {e.message}")
        return
    print_routes(routes)


async def cli_status(tx_hash: str, from_chain: Optional[int], to_chain: Optional[int], bridge: Optional[str]):
    """CLI command to check a cross-chain transfer"""
    try:
        status = await check_transfer_status(
            LifiProvider(), tx_hash, from_chain=from_chain, to_chain=to_chain, bridge=bridge
        )
    except PaymentError as e:
        print(f"❌ Error: {e.message}")
        return

    print(f"Status: {status.status}" + (f" ({status.substatus})" if status.substatus else ""))
    if status.substatus_message:
        print(f"  {status.substatus_message}")
    if status.receiving_tx_link:
        print(f"  Destination tx: {status.receiving_tx_link}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="PayFlow CLI")
    subparsers = parser.add_subparsers(dest="command")

    balances_parser = subparsers.add_parser("balances", help="List wallet balances")
    balances_parser.add_argument("address", help="Wallet address")
    balances_parser.add_argument("--chains", help="Comma-separated chain IDs")

    registry = get_chain_registry()
    chain_ids = registry.supported_chain_ids()
    receive_tokens = ", ".join(registry.receive_token_symbols())

    routes_parser = subparsers.add_parser("routes", help="Fetch ranked routes for a payment")
    routes_parser.add_argument("wallet", help="Paying wallet address")
    routes_parser.add_argument("recipient", help="Recipient address or ENS name")
    routes_parser.add_argument("amount", help="Human amount, e.g. 10.00")
    routes_parser.add_argument("--from-chain", type=int, default=42161, choices=chain_ids, metavar="CHAIN_ID", help="Source chain ID (default: 42161)")
    routes_parser.add_argument("--from-token", default="USDC", help="Source token symbol or address")
    routes_parser.add_argument("--to-chain", type=int, default=8453, choices=chain_ids, metavar="CHAIN_ID", help="Destination chain ID (default: 8453)")
    routes_parser.add_argument("--to-token", default="USDC", help=f"Destination token: {receive_tokens}, or an address")
    routes_parser.add_argument("--receive", action="store_true", help="Amount is what the recipient must receive")
    routes_parser.add_argument("--slippage", type=float, help="Slippage as a fraction (default from settings)")

    status_parser = subparsers.add_parser("status", help="Check a cross-chain transfer")
    status_parser.add_argument("tx_hash", help="Source chain transaction hash")
    status_parser.add_argument("--from-chain", type=int, help="Source chain ID")
    status_parser.add_argument("--to-chain", type=int, help="Destination chain ID")
    status_parser.add_argument("--bridge", help="Bridge tool key")

    return parser


async def main():
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    command = args.command.lower()

    if command == "balances":
        chains = [int(part) for part in args.chains.split(",")] if args.chains else None
        await cli_balances(args.address, chains)

    elif command == "routes":
        await cli_routes(args)

    elif command == "status":
        await cli_status(args.tx_hash, args.from_chain, args.to_chain, args.bridge)

    else:
        print(f"❌ Unknown command: {command}")
        parser.print_help()


if __name__ == "__main__":
    asyncio.run(main())
