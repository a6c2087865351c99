from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..core.payments.balances import BalanceInventory
from ..services.address import is_valid_evm_address
from .dependencies import get_balance_inventory

router = APIRouter(prefix="/balances")


@router.get("/{wallet_address}")
async def wallet_balances(
    wallet_address: str,
    chains: Optional[str] = Query(default=None, description="Comma-separated chain IDs"),
    inventory: BalanceInventory = Depends(get_balance_inventory),
) -> Dict[str, Any]:
    if not is_valid_evm_address(wallet_address):
        raise HTTPException(status_code=400, detail="Invalid wallet address")

    chain_ids: Optional[List[int]] = None
    if chains:
        try:
            chain_ids = [int(part) for part in chains.split(",") if part.strip()]
        except ValueError:
            raise HTTPException(status_code=400, detail="chains must be comma-separated integers")

    balances = await inventory.fetch_balances(wallet_address, chain_ids)
    return {
        "walletAddress": wallet_address,
        "balances": [balance.to_dict() for balance in balances],
    }
