# models.py
import math
from datetime import date
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field, field_validator

class CredentialsRequest(BaseModel):
    # both optional so a missing field becomes InvalidInput rather than a 422
    email: str | None = None
    password: str | None = None

class RegisterResponse(BaseModel):
    message: str
    token: str

class UserPublic(BaseModel):
    id: str
    username: str | None = None
    email: str

class LoginResponse(UserPublic):
    message: str
    token: str

class StockIn(BaseModel):
    symbol: str = Field(min_length=1)
    name: str = Field(min_length=1)
    exchangeShortName: str | None = None
    exchange: str | None = None
    type: str | None = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "exchange_short_name": self.exchangeShortName,
            "exchange": self.exchange,
            "type": self.type,
        }

class SearchPage(BaseModel):
    results: List[Dict[str, Any]]
    page: int
    totalPages: int
    totalResults: int
    pageNumbers: List[int]

class HoldingIn(BaseModel):
    symbol: str = Field(min_length=1)
    shares: float = Field(ge=0)
    costPerShare: float = Field(ge=0)
    costInEUR: float = Field(ge=0)
    tradingCurrency: Literal["USD", "EUR", "PLN", "GBP"]
    purchaseDate: date
    notes: str = ""

    @field_validator("costInEUR")
    @classmethod
    def _finite(cls, v: float) -> float:
        if math.isnan(v) or math.isinf(v):
            raise ValueError("costInEUR must be a finite number")
        return v
