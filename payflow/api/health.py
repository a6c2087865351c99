from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..config import settings
from ..providers.lifi import LifiProvider
from .dependencies import get_lifi_provider

router = APIRouter()


@router.get("/healthz")
async def health_check(provider: LifiProvider = Depends(get_lifi_provider)) -> Dict[str, Any]:
    """Health check endpoint that verifies routing service reachability"""

    lifi_ok = await provider.ping()
    return {
        "status": "healthy" if lifi_ok else "degraded",
        "providers": {
            "lifi": {
                "status": "healthy" if lifi_ok else "unavailable",
                "api_key_configured": settings.has_lifi_key,
            }
        },
    }
