from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SplitParticipant(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True
    )

    name: Optional[str] = None
    share: Optional[Decimal] = None


class SaleRecord(BaseModel):
    """A sale as handed to the commission engine.

    Accepts either the camelCase field names used by the sales screens
    (``saleDownPayment``) or the snake_case attribute names.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True
    )

    sale_id: Optional[str] = None
    sale_date: Optional[str] = None
    account_number: Optional[str] = None
    stock_number: Optional[str] = None
    vin: Optional[str] = None
    vin_last4: Optional[str] = None

    salesperson: Optional[str] = None
    salesperson_split: Optional[List[SplitParticipant]] = None
    sale_type: Optional[str] = None

    sale_down_payment: Optional[Decimal] = None
    down_payment: Optional[Decimal] = None
    sale_price: Optional[Decimal] = None

    year: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    trim: Optional[str] = None
