from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class BankCreate(BaseModel):
    bank_name: str
    bank_code: str
    account_number: str
    account_name: str


class BankRead(BaseModel):
    id: int
    bank_name: str
    bank_code: str
    account_number: str
    account_name: str
    created_at: datetime
