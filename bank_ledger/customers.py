"""
Customer Module

Customers are flat value objects; the ledger assigns their ids.
"""

from dataclasses import dataclass
from typing import Dict, Sequence, Tuple


def has_line_break(value: str) -> bool:
    """Records are stored one per line"""
    return "\n" in value or "\r" in value


@dataclass(frozen=True)
class CustomerProfile:
    """Customer details supplied when opening an account"""
    name: str
    email: str = ""
    phone: str = ""
    address: str = ""

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Customer name is required")
        for field_name in ("name", "email", "phone"):
            if "," in getattr(self, field_name):
                raise ValueError(f"Customer {field_name} cannot contain commas")
        for field_name in ("name", "email", "phone", "address"):
            if has_line_break(getattr(self, field_name)):
                raise ValueError(f"Customer {field_name} cannot contain line breaks")


@dataclass(frozen=True)
class Customer:
    """Bank customer"""
    id: str
    name: str
    email: str
    phone: str
    address: str

    @classmethod
    def from_profile(cls, customer_id: str, profile: CustomerProfile) -> 'Customer':
        return cls(
            id=customer_id,
            name=profile.name,
            email=profile.email,
            phone=profile.phone,
            address=profile.address,
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
        }

    def to_record(self) -> Tuple[str, ...]:
        """Fields in persisted order: id,name,email,phone,address"""
        return (self.id, self.name, self.email, self.phone, self.address)

    def to_line(self) -> str:
        return ",".join(self.to_record())

    @classmethod
    def from_line(cls, line: str) -> 'Customer':
        # Address is last and may contain commas
        return cls.from_record(line.rstrip("\r\n").split(",", 4))

    @classmethod
    def from_record(cls, record: Sequence[str]) -> 'Customer':
        if len(record) != 5:
            raise ValueError(f"Expected 5 customer fields, got {len(record)}")
        return cls(*record)
