"""Transfer quote calculation. Pure arithmetic, no rounding."""

import math
from dataclasses import dataclass
from typing import Any, Dict

from ..errors import QuoteError


@dataclass(frozen=True)
class TransferQuote:
    amount: float
    rate: float
    fee_rate: float
    recipient_amount: float
    fee: float
    total: float

    @property
    def fee_percentage(self) -> float:
        return self.fee_rate * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": self.amount,
            "rate": self.rate,
            "feeRate": self.fee_rate,
            "recipientAmount": self.recipient_amount,
            "fee": self.fee,
            "total": self.total,
        }


def calculate_quote(amount: float, rate: float, fee_rate: float) -> TransferQuote:
    if not math.isfinite(amount) or amount <= 0:
        raise QuoteError(f"Invalid transfer amount: {amount}")
    if not math.isfinite(rate) or rate <= 0:
        raise QuoteError(f"Invalid exchange rate: {rate}")
    if not math.isfinite(fee_rate) or fee_rate < 0:
        raise QuoteError(f"Invalid fee rate: {fee_rate}")

    fee = amount * fee_rate
    return TransferQuote(
        amount=amount,
        rate=rate,
        fee_rate=fee_rate,
        recipient_amount=amount * rate,
        fee=fee,
        total=amount + fee,
    )
