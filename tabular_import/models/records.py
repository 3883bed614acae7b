from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from .config_models import DatasetKind

"""Typed record shapes, one per dataset kind.

build_record() turns a row's parsed values into the record for the chosen
kind. Each record knows its natural key (the store filter used for dedup)
and the flat dict that is inserted into the target store.
"""

__all__ = [
    "AccountRecord",
    "ClientRecord",
    "EmployeeRecord",
    "FinancialEntryRecord",
    "ImportContext",
    "IncomeTypeRecord",
    "Record",
    "VendorRecord",
    "build_record",
    "normalize_description",
]

_WS = re.compile(r"\s+")


def normalize_description(text: str | None) -> str:
    """Lowercase, trim and collapse inner whitespace (dedup key form)."""
    if not text:
        return ""
    return _WS.sub(" ", text.strip().lower())


@dataclass(frozen=True)
class ImportContext:
    """Ownership stamped on every inserted row; owner_id also scopes dedup."""
    owner_id: str | None = None
    company_id: str | None = None


@dataclass(frozen=True)
class _NamedRecord:
    name: str

    def natural_key(self) -> dict[str, Any]:
        return {"name": self.name}

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EmployeeRecord(_NamedRecord):
    role: str | None = None
    email: str | None = None
    phone: str | None = None
    hourly_rate: Decimal | None = None


@dataclass(frozen=True)
class VendorRecord(_NamedRecord):
    category: str | None = None
    contact_name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class ClientRecord(_NamedRecord):
    company_name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class AccountRecord(_NamedRecord):
    account_type: str | None = None
    description: str | None = None
    has_tax: bool = False


@dataclass(frozen=True)
class IncomeTypeRecord(_NamedRecord):
    description: str | None = None


@dataclass(frozen=True)
class FinancialEntryRecord:
    """Income or expense line. amount is stored as an absolute value."""
    amount: Decimal
    entry_date: date
    direction: str  # "income" | "expense"
    description: str | None = None
    category: str | None = None
    counterparty: str | None = None

    @property
    def month(self) -> int:
        return self.entry_date.month

    @property
    def year(self) -> int:
        return self.entry_date.year

    @property
    def description_key(self) -> str:
        return normalize_description(self.description)

    def natural_key(self) -> dict[str, Any]:
        return {
            "amount": self.amount,
            "month": self.month,
            "year": self.year,
            "description_key": self.description_key,
        }

    def to_row(self) -> dict[str, Any]:
        row = asdict(self)
        row.update(month=self.month, year=self.year, description_key=self.description_key)
        return row


Record = (
    EmployeeRecord
    | VendorRecord
    | ClientRecord
    | AccountRecord
    | IncomeTypeRecord
    | FinancialEntryRecord
)


def _text(values: dict[str, Any], key: str) -> str | None:
    value = values.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _direction(kind: DatasetKind, values: dict[str, Any]) -> str:
    # entry type column first, then the sign, then the dataset default
    if values.get("entry_type"):
        return values["entry_type"]
    if values["amount"] < 0:
        return "expense"
    return "income" if kind is DatasetKind.INCOME else "expense"


def build_record(kind: DatasetKind, values: dict[str, Any]) -> Record:
    """Build the typed record for kind from validated, parsed values.

    Raises:
        KeyError: a required value is absent (the row was not validated)
    """
    if kind is DatasetKind.EMPLOYEE:
        return EmployeeRecord(
            name=values["name"],
            role=_text(values, "role"),
            email=_text(values, "email"),
            phone=_text(values, "phone"),
            hourly_rate=values.get("hourly_rate"),
        )
    if kind is DatasetKind.VENDOR:
        return VendorRecord(
            name=values["name"],
            category=_text(values, "category"),
            contact_name=_text(values, "contact_name"),
            email=_text(values, "email"),
            phone=_text(values, "phone"),
            address=_text(values, "address"),
            notes=_text(values, "notes"),
        )
    if kind in (DatasetKind.CLIENT, DatasetKind.LEAD):
        return ClientRecord(
            name=values["name"],
            company_name=_text(values, "company_name"),
            email=_text(values, "email"),
            phone=_text(values, "phone"),
            address=_text(values, "address"),
            notes=_text(values, "notes"),
        )
    if kind is DatasetKind.ACCOUNT:
        return AccountRecord(
            name=values["name"],
            account_type=_text(values, "account_type"),
            description=_text(values, "description"),
            has_tax=bool(values.get("has_tax") or False),
        )
    if kind is DatasetKind.INCOME_TYPE:
        return IncomeTypeRecord(name=values["name"], description=_text(values, "description"))
    if kind in (DatasetKind.INCOME, DatasetKind.EXPENSE):
        return FinancialEntryRecord(
            amount=abs(values["amount"]),
            entry_date=values["date"],
            direction=_direction(kind, values),
            description=_text(values, "description"),
            category=_text(values, "category"),
            counterparty=_text(values, "counterparty"),
        )
    raise ValueError(f"unsupported dataset kind: {kind}")
