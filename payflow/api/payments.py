from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, model_validator

from ..core.payments.errors import ErrorCategory, IntentValidationError, PaymentError
from ..core.payments.models import AmountMode, PaymentIntent, PaymentRecord, PaymentStatus
from ..core.payments.records import InMemoryPaymentLedger
from ..core.payments.routes import RouteEngine
from ..core.payments.status import check_transfer_status
from ..providers.lifi import LifiProvider
from .dependencies import get_lifi_provider, get_payment_ledger, get_route_engine

router = APIRouter(prefix="/payments")

NO_ROUTE_DETAIL = "No route found for this transfer. Try a different token pair or amount."


class QuoteRequest(BaseModel):
    fromChain: int = Field(..., description="Source chain ID")
    toChain: int = Field(..., description="Destination chain ID")
    fromToken: str = Field(..., description="Source token address (zero address for native)")
    toToken: str = Field(..., description="Destination token address (zero address for native)")
    fromAmount: Optional[str] = Field(default=None, description="Exact input, in smallest units")
    toAmount: Optional[str] = Field(default=None, description="Exact output the recipient must receive, in smallest units")
    fromAddress: str = Field(..., description="Paying wallet")
    toAddress: Optional[str] = Field(default=None, description="Recipient; defaults to the paying wallet")
    slippage: Optional[float] = Field(default=None, ge=0, lt=1, description="Slippage tolerance as a fraction")
    invoiceId: Optional[str] = Field(default=None, description="Invoice being paid")

    @model_validator(mode="after")
    def _one_amount(self) -> "QuoteRequest":
        if bool(self.fromAmount) == bool(self.toAmount):
            raise ValueError("Provide exactly one of fromAmount or toAmount")
        return self

    def to_intent(self) -> PaymentIntent:
        mode = AmountMode.EXACT_RECEIVE if self.toAmount else AmountMode.EXACT_SEND
        raw = self.toAmount if self.toAmount else self.fromAmount
        try:
            amount = int(raw)
        except (TypeError, ValueError):
            raise IntentValidationError("Amount must be an integer in smallest units") from None
        wallet = self.fromAddress.strip()
        return PaymentIntent(
            source_chain_id=self.fromChain,
            source_token_address=self.fromToken.strip(),
            source_wallet_address=wallet,
            destination_chain_id=self.toChain,
            destination_token_address=self.toToken.strip(),
            destination_address=(self.toAddress or "").strip() or wallet,
            amount=amount,
            amount_mode=mode,
            slippage=self.slippage,
            invoice_id=self.invoiceId,
        )


class PaymentRecordRequest(BaseModel):
    invoiceId: Optional[str] = None
    fromChain: int
    toChain: int
    fromToken: str
    toToken: str
    amount: str
    status: PaymentStatus = PaymentStatus.PENDING
    txHash: Optional[str] = None
    routeData: Optional[Dict[str, Any]] = None


_CATEGORY_STATUS = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.UNSUPPORTED_TOKEN: 400,
    ErrorCategory.PROVIDER: 502,
}


def _raise_for(exc: PaymentError) -> None:
    raise HTTPException(status_code=_CATEGORY_STATUS.get(exc.category, 500), detail=exc.message)


@router.post("/quote")
async def payment_quote(
    request: QuoteRequest,
    engine: RouteEngine = Depends(get_route_engine),
) -> Dict[str, Any]:
    try:
        route = await engine.fetch_quote(request.to_intent())
    except PaymentError as exc:
        _raise_for(exc)
    if route is None:
        raise HTTPException(status_code=404, detail=NO_ROUTE_DETAIL)
    return {"success": True, "route": route.to_dict()}


@router.post("/routes")
async def payment_routes(
    request: QuoteRequest,
    engine: RouteEngine = Depends(get_route_engine),
) -> Dict[str, Any]:
    try:
        routes = await engine.fetch_routes(request.to_intent())
    except PaymentError as exc:
        _raise_for(exc)
    if not routes:
        raise HTTPException(status_code=404, detail=NO_ROUTE_DETAIL)
    recommended = next((route.id for route in routes if route.is_recommended), routes[0].id)
    return {
        "success": True,
        "routes": [route.to_dict() for route in routes],
        "selectedRouteId": recommended,
    }


@router.get("/status")
async def payment_status(
    txHash: str = Query(..., description="Source chain transaction hash"),
    fromChain: Optional[int] = Query(default=None),
    toChain: Optional[int] = Query(default=None),
    bridge: Optional[str] = Query(default=None),
    provider: LifiProvider = Depends(get_lifi_provider),
) -> Dict[str, Any]:
    try:
        status = await check_transfer_status(provider, txHash, from_chain=fromChain, to_chain=toChain, bridge=bridge)
    except PaymentError as exc:
        _raise_for(exc)
    return {"success": True, "status": status.to_dict()}


@router.get("/records")
async def list_payment_records(
    invoiceId: Optional[str] = Query(default=None),
    ledger: InMemoryPaymentLedger = Depends(get_payment_ledger),
) -> Dict[str, List[Dict[str, Any]]]:
    records = await ledger.list(invoice_id=invoiceId)
    return {"payments": [record.to_dict() for record in records]}


@router.post("/records", status_code=201)
async def create_payment_record(
    request: PaymentRecordRequest,
    ledger: InMemoryPaymentLedger = Depends(get_payment_ledger),
) -> Dict[str, Any]:
    record = PaymentRecord(
        invoice_id=request.invoiceId,
        source_chain=request.fromChain,
        destination_chain=request.toChain,
        source_token=request.fromToken,
        destination_token=request.toToken,
        amount=request.amount,
        status=request.status,
        transaction_hash=request.txHash,
        steps=list((request.routeData or {}).get("steps") or []),
    )
    saved = await ledger.save(record)
    return {"payment": saved.to_dict()}
