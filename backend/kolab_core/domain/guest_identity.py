"""
kolab_core/domain/guest_identity.py

客人身份规范化 - 用于匹配的联系字段规范形式

电话只做"仅保留数字"的规范化，不做任何地区解析。
空值或规范化后为空时返回 None。
"""
import re
from dataclasses import dataclass
from typing import Any, Optional

_NON_DIGITS = re.compile(r"\D+")
_WHITESPACE = re.compile(r"\s+")


def normalize_email(email: Any) -> Optional[str]:
    """去除首尾空白并转小写"""
    if not email:
        return None
    trimmed = str(email).strip()
    if not trimmed:
        return None
    return trimmed.lower()


def normalize_phone(phone: Any) -> Optional[str]:
    """去除所有非数字字符"""
    if not phone:
        return None
    digits = _NON_DIGITS.sub("", str(phone))
    return digits or None


def normalize_name(name: Any) -> Optional[str]:
    """折叠内部空白并转小写"""
    if not name:
        return None
    normalized = _WHITESPACE.sub(" ", str(name).strip()).lower()
    return normalized or None


@dataclass(frozen=True)
class NormalizedIdentity:
    email_norm: Optional[str] = None
    phone_norm: Optional[str] = None
    name_norm: Optional[str] = None

    @classmethod
    def of(cls, email: Any = None, phone: Any = None, name: Any = None) -> "NormalizedIdentity":
        return cls(
            email_norm=normalize_email(email),
            phone_norm=normalize_phone(phone),
            name_norm=normalize_name(name),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.email_norm or self.phone_norm or self.name_norm)

    def to_dict(self) -> dict:
        return {
            "email_norm": self.email_norm,
            "phone_norm": self.phone_norm,
            "name_norm": self.name_norm,
        }


__all__ = ["normalize_email", "normalize_phone", "normalize_name", "NormalizedIdentity"]
