"""Payment record sink: where finished payment attempts are handed off."""

from typing import Dict, List, Optional, Protocol

from .models import PaymentRecord


class PaymentRecordSink(Protocol):
    async def save(self, record: PaymentRecord) -> PaymentRecord:
        ...


class InMemoryPaymentLedger:
    """Process-local record store used by the API and tests."""

    def __init__(self) -> None:
        self._records: Dict[str, PaymentRecord] = {}

    async def save(self, record: PaymentRecord) -> PaymentRecord:
        self._records[record.id] = record
        return record

    async def get(self, record_id: str) -> Optional[PaymentRecord]:
        return self._records.get(record_id)

    async def list(self, invoice_id: Optional[str] = None) -> List[PaymentRecord]:
        records = sorted(self._records.values(), key=lambda record: record.created_at, reverse=True)
        if invoice_id is not None:
            records = [record for record in records if record.invoice_id == invoice_id]
        return records
