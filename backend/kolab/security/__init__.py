"""
安全模块：操作人识别（认证由外部身份提供方完成）
"""
from kolab.security.auth import ACTING_USER_HEADER, get_acting_user

__all__ = ["ACTING_USER_HEADER", "get_acting_user"]
