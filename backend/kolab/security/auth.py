"""
操作人识别

认证由外部身份提供方完成，网关把已认证用户写入 X-Acting-User 头。
这里只读取该头，用于审计字段（created_by / updated_by / reported_by）。
"""
from typing import Optional

from fastapi import Header

ACTING_USER_HEADER = "X-Acting-User"


def get_acting_user(x_acting_user: Optional[str] = Header(None, alias=ACTING_USER_HEADER)) -> Optional[str]:
    """依赖注入：当前操作人（未提供时为 None）"""
    if x_acting_user is None:
        return None
    return x_acting_user.strip() or None
