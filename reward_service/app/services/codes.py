from __future__ import annotations

import secrets
import string


CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_redemption_code(length: int = 16) -> str:
    """A-Z0-9 로 이루어진 추측 불가능한 리딤 코드를 만든다."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    return code.strip().upper()
