from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from ..providers.ens import EnsProvider
from ..services.address import is_valid_evm_address
from .dependencies import get_ens_provider

router = APIRouter(prefix="/ens")


@router.get("/resolve/{name}")
async def resolve_name(name: str, ens: EnsProvider = Depends(get_ens_provider)) -> Dict[str, Any]:
    address = await ens.resolve(name)
    return {"name": name, "address": address}


@router.get("/reverse/{address}")
async def reverse_resolve(address: str, ens: EnsProvider = Depends(get_ens_provider)) -> Dict[str, Any]:
    if not is_valid_evm_address(address):
        raise HTTPException(status_code=400, detail="Invalid address")
    name = await ens.reverse_resolve(address)
    return {"address": address, "name": name}


@router.get("/profile/{name}")
async def profile(name: str, ens: EnsProvider = Depends(get_ens_provider)) -> Dict[str, Any]:
    result = await ens.get_profile(name)
    if result is None:
        raise HTTPException(status_code=404, detail=f"No ENS profile for {name}")
    return {"profile": result.to_dict()}
