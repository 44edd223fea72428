"""
敏感值包装类型。

client secret、access/refresh token、授权码、密码与 CSRF state 都包装为
pydantic.SecretStr 子类：repr/str 永远脱敏，但仍支持相等比较。
需要原始值时显式调用 get_secret_value()。
"""

import base64
import secrets
from typing import Optional, Type, TypeVar, Union

from pydantic import SecretStr

S = TypeVar("S", bound="RedactedValue")


class RedactedValue(SecretStr):
    """所有敏感值的公共基类。"""

    @classmethod
    def coerce(cls: Type[S], value: Union[str, SecretStr]) -> S:
        """将 str 或其他 SecretStr 转换为当前类型。"""
        if isinstance(value, cls):
            return value
        if isinstance(value, SecretStr):
            return cls(value.get_secret_value())
        if not isinstance(value, str):
            raise TypeError(f"{cls.__name__} expects str, got {type(value).__name__}")
        return cls(value)

    @classmethod
    def coerce_optional(cls: Type[S], value: Optional[Union[str, SecretStr]]) -> Optional[S]:
        if value is None:
            return None
        return cls.coerce(value)


class ClientSecret(RedactedValue):
    """Client password issued during registration (RFC 6749 §2.2)."""


class AccessToken(RedactedValue):
    """Access token returned by the token endpoint."""


class RefreshToken(RedactedValue):
    """Refresh token used to obtain a new access token."""


class AuthorizationCode(RedactedValue):
    """Authorization code returned from the authorization endpoint."""


class ResourceOwnerPassword(RedactedValue):
    """Resource owner's password for the password grant."""


# 128 bits
STATE_NUM_BYTES = 16


class State(RedactedValue):
    """
    CSRF state，随授权请求一起发送并由授权服务器原样回传。

    每次授权尝试生成一个新的 State，回调时用 verify_state() 比较，
    比较一次后丢弃。
    """

    @classmethod
    def new_random(cls) -> "State":
        """生成 128 位随机 state，URL-safe base64 编码且无 padding。"""
        raw = secrets.token_bytes(STATE_NUM_BYTES)
        return cls(base64.urlsafe_b64encode(raw).decode("ascii").rstrip("="))
