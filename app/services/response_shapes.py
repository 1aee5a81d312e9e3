"""
Tolerant extraction of values from SumUp response bodies.

SumUp response shapes vary between API versions and account types. Each
field is described by a ``FieldRule``: an ordered tuple of key paths tried in
sequence, the first present value winning. Adding or dropping a shape
variant means editing a tuple below.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from app.core.errors import UpstreamSchemaError
from app.models.records import TransactionRecord, utcnow

KeyPath = tuple[str, ...]

DEFAULT_CURRENCY = "EUR"
DEFAULT_STATUS = "UNKNOWN"


@dataclass(slots=True, frozen=True)
class FieldRule:
    """Ordered key paths for one logical field."""

    name: str
    paths: tuple[KeyPath, ...]
    default: Any = None

    def extract(self, payload: Any) -> Any:
        for path in self.paths:
            value = lookup(payload, path)
            if value is not None and value != "":
                return value
        return self.default


MERCHANT_CODE = FieldRule(
    "merchant_code",
    (
        ("merchant_profile", "merchant_code"),
        ("merchant_code",),
        ("merchant", "merchant_code"),
        ("account", "merchant_code"),
    ),
)

TRANSACTION_LIST_KEYS: tuple[str, ...] = ("items", "data", "transactions")

TRANSACTION_ID = FieldRule(
    "transaction_id", (("id",), ("transaction_id",), ("transaction_code",))
)
AMOUNT = FieldRule(
    "amount", (("amount", "value"), ("amount",), ("total_amount",))
)
CURRENCY = FieldRule(
    "currency", (("currency",), ("amount", "currency")), default=DEFAULT_CURRENCY
)
STATUS = FieldRule(
    "status", (("status",), ("simple_status",)), default=DEFAULT_STATUS
)
DESCRIPTION = FieldRule(
    "description", (("description",), ("product_summary",))
)
MERCHANT_NAME = FieldRule(
    "merchant_name",
    (("merchant_name",), ("merchant", "name"), ("business_name",)),
)
TIMESTAMP = FieldRule(
    "transaction_date",
    (("timestamp",), ("created_at",), ("local_time",), ("date",)),
)


def lookup(payload: Any, path: KeyPath) -> Any:
    """Walk ``path`` through nested mappings, returning ``None`` when absent."""
    current = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def extract_merchant_code(profile: Any) -> str:
    value = MERCHANT_CODE.extract(profile)
    if value is None:
        raise UpstreamSchemaError(
            "No merchant code found in SumUp profile response.",
            details={"searched": [".".join(path) for path in MERCHANT_CODE.paths]},
        )
    return str(value)


def extract_transaction_items(body: Any) -> list[Any]:
    """Return the transaction list from a wrapped or bare response body."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        for key in TRANSACTION_LIST_KEYS:
            items = body.get(key)
            if isinstance(items, list):
                return items
    raise UpstreamSchemaError(
        "SumUp transaction history response has an unrecognised shape.",
        details={"expected": [*TRANSACTION_LIST_KEYS, "<list>"]},
    )


def parse_amount(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValueError(f"Unusable amount: {value!r}")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Unparsable amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Non-finite amount: {value!r}")
    return amount


def parse_transaction_time(value: Any) -> datetime:
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Unusable timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_transaction(
    item: Any, *, user_id: str, now: Optional[datetime] = None
) -> TransactionRecord:
    """Map one upstream transaction to a ``TransactionRecord``.

    Raises ``ValueError`` when the item lacks an identifier, amount or a
    parsable timestamp.
    """
    if not isinstance(item, dict):
        raise ValueError(f"Transaction is not an object: {type(item).__name__}")

    transaction_id = TRANSACTION_ID.extract(item)
    if transaction_id is None:
        raise ValueError("Transaction has no identifier.")

    description = DESCRIPTION.extract(item)
    merchant_name = MERCHANT_NAME.extract(item)
    return TransactionRecord(
        user_id=user_id,
        transaction_id=str(transaction_id),
        amount=parse_amount(AMOUNT.extract(item)),
        currency=str(CURRENCY.extract(item)).upper(),
        status=str(STATUS.extract(item)),
        description=str(description) if description is not None else None,
        merchant_name=str(merchant_name) if merchant_name is not None else None,
        transaction_date=parse_transaction_time(TIMESTAMP.extract(item)),
        raw_data=item,
        updated_at=now or utcnow(),
    )


__all__ = [
    "AMOUNT",
    "CURRENCY",
    "DEFAULT_CURRENCY",
    "DEFAULT_STATUS",
    "DESCRIPTION",
    "FieldRule",
    "MERCHANT_CODE",
    "MERCHANT_NAME",
    "STATUS",
    "TIMESTAMP",
    "TRANSACTION_ID",
    "TRANSACTION_LIST_KEYS",
    "extract_merchant_code",
    "extract_transaction_items",
    "lookup",
    "normalize_transaction",
    "parse_amount",
    "parse_transaction_time",
]
