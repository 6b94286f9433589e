from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BrandIn(BaseModel):
    name: str = Field(min_length=1)


class ProductIn(BaseModel):
    brand_id: int = Field(ge=1)
    name: str = Field(min_length=1)
    qty: int = Field(ge=0)
    price: int = Field(ge=0)


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    brand_id: int
    name: str
    qty: int
    price: int


class OrderDetailIn(BaseModel):
    product_id: int = Field(ge=1)
    qty: int = Field(ge=1)


class OrderCreate(BaseModel):
    user_id: int = Field(ge=1)
    detail: List[OrderDetailIn] = Field(min_length=1)


class OrderDetailOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    transaction_id: int = Field(validation_alias="order_id")
    product_id: int
    qty: int
    sub_total: int


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    date: datetime
    grand_total: int
    detail: List[OrderDetailOut] = Field(validation_alias="lines")


class ErrorJSON(BaseModel):
    message: str = ""  # for developers
    reason: str = ""
    error_user_title: str = ""  # for users
    error_user_msg: str = ""


class ResponseJSON(BaseModel):
    status: int
    message: str
    data: Optional[Any] = None
    error: Optional[ErrorJSON] = None
