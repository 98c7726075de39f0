from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class Voucher(BaseModel):
    """카탈로그 바우처. quantity 는 남은 재고다."""

    id: str | None = None
    title: str
    description: str = ""
    category: str
    brand: str | None = None
    coin_value: int
    quantity: int
    original_price: int | None = None
    image_url: str | None = None
    expiry_date: datetime | None = None
    is_active: bool = True
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime


class VoucherDraft(BaseModel):
    """슈퍼어드민 바우처 등록 입력."""

    title: str
    description: str = ""
    category: str
    brand: str | None = None
    coin_value: int
    quantity: int
    original_price: int | None = None
    image_url: str | None = None
    expiry_date: datetime | None = None


class VoucherPurchase(BaseModel):
    """구매된 바우처 한 장. 수량 n 구매는 n 개의 레코드를 만든다."""

    id: str | None = None
    voucher_id: str
    voucher_title: str
    employee_id: str
    coin_value: int
    is_redeemed: bool = False
    redeemed_at: datetime | None = None
    purchased_at: datetime
    created_at: datetime
    updated_at: datetime
