from __future__ import annotations

from common.mongo.types import (
    BaseDocument,
    MongoDateTime,
    build_document_data_from_domain,
    from_object_id,
)

from ...models.voucher import Voucher, VoucherPurchase


class VoucherDocument(BaseDocument):
    """MongoDB vouchers 컬렉션 도큐먼트 모델."""

    title: str
    description: str = ""
    category: str
    brand: str | None = None
    coin_value: int
    quantity: int
    original_price: int | None = None
    image_url: str | None = None
    expiry_date: MongoDateTime | None = None
    is_active: bool = True
    created_by: str | None = None

    @classmethod
    def from_domain(cls, voucher: Voucher) -> "VoucherDocument":
        data = build_document_data_from_domain(voucher)
        return cls.model_validate(data)

    def to_domain(self) -> Voucher:
        return Voucher(
            id=from_object_id(self.id),
            title=self.title,
            description=self.description,
            category=self.category,
            brand=self.brand,
            coin_value=self.coin_value,
            quantity=self.quantity,
            original_price=self.original_price,
            image_url=self.image_url,
            expiry_date=self.expiry_date,
            is_active=self.is_active,
            created_by=self.created_by,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class VoucherPurchaseDocument(BaseDocument):
    """MongoDB voucher_purchases 컬렉션 도큐먼트 모델."""

    voucher_id: str
    voucher_title: str
    employee_id: str
    coin_value: int
    is_redeemed: bool = False
    redeemed_at: MongoDateTime | None = None
    purchased_at: MongoDateTime

    @classmethod
    def from_domain(cls, purchase: VoucherPurchase) -> "VoucherPurchaseDocument":
        data = build_document_data_from_domain(purchase)
        return cls.model_validate(data)

    def to_domain(self) -> VoucherPurchase:
        return VoucherPurchase(
            id=from_object_id(self.id),
            voucher_id=self.voucher_id,
            voucher_title=self.voucher_title,
            employee_id=self.employee_id,
            coin_value=self.coin_value,
            is_redeemed=self.is_redeemed,
            redeemed_at=self.redeemed_at,
            purchased_at=self.purchased_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
