"""
Pydantic schemas for API requests and responses
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from .accounts import Account
from .customers import Customer, CustomerProfile
from .transactions import Transaction


class CreateAccountRequest(BaseModel):
    name: str
    email: str = ""
    phone: str = ""
    address: str = ""
    kind: str = Field("SAVINGS", description="SAVINGS or CURRENT")
    initial_deposit: str = Field("0", description="Decimal amount as string")
    password: str

    def to_profile(self) -> CustomerProfile:
        return CustomerProfile(
            name=self.name,
            email=self.email,
            phone=self.phone,
            address=self.address
        )


class AmountRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")


class TransferRequest(BaseModel):
    from_account: str
    to_account: str
    amount: str = Field(..., description="Decimal amount as string")


class LoginRequest(BaseModel):
    account_number: str
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class TransactionModel(BaseModel):
    id: str
    account_number: str
    transaction_type: str
    amount: str
    balance_after: str
    timestamp: str
    description: str

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> 'TransactionModel':
        return cls(**transaction.to_dict())


class CustomerModel(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    address: str

    @classmethod
    def from_customer(cls, customer: Customer) -> 'CustomerModel':
        return cls(**customer.to_dict())


class AccountModel(BaseModel):
    account_number: str
    customer_id: str
    kind: str
    balance: str
    date_created: str
    active: bool
    customer: Optional[CustomerModel] = None

    @classmethod
    def from_account(cls, account: Account,
                     customer: Optional[Customer] = None) -> 'AccountModel':
        data: Dict[str, Any] = account.to_dict()
        if customer is not None:
            data["customer"] = CustomerModel.from_customer(customer)
        return cls(**data)


class TransactionListResponse(BaseModel):
    transactions: List[TransactionModel]


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: str
    account: AccountModel
    message: str = "Login successful"
