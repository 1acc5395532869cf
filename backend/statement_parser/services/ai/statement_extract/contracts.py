"""Statement extract scope contracts: StatementRecord + ExtractionRequest."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

NOT_FOUND = "Not Found"

# Wire keys, in export order.
STATEMENT_FIELDS: tuple[str, ...] = (
    "issuer",
    "cardLast4",
    "statementPeriod",
    "dueDate",
    "totalBalance",
    "minimumPayment",
)


class StatementRecord(BaseModel):
    """The six fields pulled out of a credit card statement.

    Every field is always present. Values the model could not locate hold
    ``NOT_FOUND``. Values are kept exactly as the model produced them, so a
    numeric balance stays numeric.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    issuer: Any = NOT_FOUND
    card_last4: Any = Field(default=NOT_FOUND, alias="cardLast4")
    statement_period: Any = Field(default=NOT_FOUND, alias="statementPeriod")
    due_date: Any = Field(default=NOT_FOUND, alias="dueDate")
    total_balance: Any = Field(default=NOT_FOUND, alias="totalBalance")
    minimum_payment: Any = Field(default=NOT_FOUND, alias="minimumPayment")

    @classmethod
    def not_found(cls) -> "StatementRecord":
        return cls()

    @classmethod
    def from_basis(cls, basis: dict[str, Any]) -> "StatementRecord":
        """Build a record from the six wire keys of *basis*; nothing else is read."""
        values = {}
        for key in STATEMENT_FIELDS:
            value = basis.get(key)
            values[key] = NOT_FOUND if value is None or _non_finite(value) else value
        return cls.model_validate(values)

    def to_export_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    def to_export_json(self) -> str:
        return json.dumps(self.to_export_dict(), indent=2, ensure_ascii=False)

    def found_fields(self) -> list[str]:
        return [key for key, value in self.to_export_dict().items() if value != NOT_FOUND]


def _non_finite(value: Any) -> bool:
    # NaN and Infinity decode to floats that strict JSON encoders reject.
    return isinstance(value, float) and not math.isfinite(value)


def export_filename(moment: datetime | None = None) -> str:
    """Download name for an exported record, e.g. ``statement-data-1718000000000.json``."""
    moment = moment or datetime.now(timezone.utc)
    return f"statement-data-{int(moment.timestamp() * 1000)}.json"


@dataclass(frozen=True)
class ExtractionRequest:
    """One user action: the uploaded bytes plus the password typed, if any."""

    document: bytes
    credential: str | None = None

    def __repr__(self) -> str:
        masked = "***" if self.credential else None
        return f"ExtractionRequest(document=<{len(self.document)} bytes>, credential={masked!r})"
