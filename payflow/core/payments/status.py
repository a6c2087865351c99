"""Cross-chain transfer status lookups."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ...providers.lifi import LifiProvider, error_message
from .errors import QuoteError


@dataclass(frozen=True)
class TransferStatus:
    tx_hash: str
    status: str                       # NOT_FOUND | INVALID | PENDING | DONE | FAILED
    substatus: Optional[str] = None   # e.g. COMPLETED, PARTIAL, REFUNDED
    substatus_message: Optional[str] = None
    bridge: Optional[str] = None
    receiving_tx_hash: Optional[str] = None
    sending_tx_link: Optional[str] = None
    receiving_tx_link: Optional[str] = None

    @property
    def is_final(self) -> bool:
        return self.status in {"DONE", "FAILED", "INVALID"}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "txHash": self.tx_hash,
            "status": self.status,
            "substatus": self.substatus,
            "substatusMessage": self.substatus_message,
            "bridge": self.bridge,
            "receivingTxHash": self.receiving_tx_hash,
            "sendingTxLink": self.sending_tx_link,
            "receivingTxLink": self.receiving_tx_link,
        }


async def check_transfer_status(
    provider: LifiProvider,
    tx_hash: str,
    *,
    from_chain: Optional[int] = None,
    to_chain: Optional[int] = None,
    bridge: Optional[str] = None,
) -> TransferStatus:
    try:
        data = await provider.get_status(tx_hash, from_chain=from_chain, to_chain=to_chain, bridge=bridge)
    except httpx.HTTPStatusError as exc:
        if exc.response.status_code == 404:
            return TransferStatus(tx_hash=tx_hash, status="NOT_FOUND")
        raise QuoteError(error_message(exc), status_code=exc.response.status_code) from exc
    except httpx.RequestError as exc:
        raise QuoteError(f"Status service unreachable: {exc}") from exc

    sending = data.get("sending") or {}
    receiving = data.get("receiving") or {}
    return TransferStatus(
        tx_hash=tx_hash,
        status=str(data.get("status") or "NOT_FOUND").upper(),
        substatus=data.get("substatus"),
        substatus_message=data.get("substatusMessage"),
        bridge=data.get("tool") or bridge,
        receiving_tx_hash=receiving.get("txHash"),
        sending_tx_link=sending.get("txLink"),
        receiving_tx_link=receiving.get("txLink"),
    )
