from __future__ import annotations

from common.mongo.types import BaseDocument, MongoDateTime, from_object_id, to_object_id

from ...models.redemption_code import CodeKind, RedemptionCode
from .restriction_document import RestrictionDocument


class RedemptionCodeDocument(BaseDocument):
    """MongoDB redemption_codes 컬렉션 도큐먼트 모델.

    kind 가 없는 과거 도큐먼트는 일반(plain) 코드로 읽는다.
    """

    code: str
    kind: str = CodeKind.PLAIN.value
    coin_amount: int
    employee_email: str | None = None
    employee_name: str | None = None
    user_id: str | None = None
    campaign_id: str | None = None
    campaign_name: str | None = None
    restriction: RestrictionDocument | None = None
    issued_by: str
    is_redeemed: bool = False
    redeemed_at: MongoDateTime | None = None
    redeemed_by: str | None = None
    expires_at: MongoDateTime
    email_sent: bool = False

    @classmethod
    def from_domain(cls, code: RedemptionCode) -> "RedemptionCodeDocument":
        data = code.model_dump(exclude={"id", "kind", "restriction", "employee_email"})
        return cls(
            _id=to_object_id(code.id) if code.id else None,
            kind=code.kind.value,
            employee_email=code.employee_email.lower() if code.employee_email else None,
            restriction=(
                RestrictionDocument.from_domain(code.restriction)
                if code.restriction is not None
                else None
            ),
            **data,
        )

    def to_domain(self) -> RedemptionCode:
        data = self.model_dump(exclude={"id", "kind", "restriction"})
        return RedemptionCode(
            id=from_object_id(self.id),
            kind=CodeKind(self.kind),
            restriction=self.restriction.to_domain() if self.restriction else None,
            **data,
        )
