"""
Token 模型 (RFC 6749 §5.1)。

Token 是一个能力协议：任何提供 from_json() 以及标准字段的类型都可以作为
TokenRequest.execute() 的反序列化目标。StandardToken 覆盖 RFC 标准字段，
对于带扩展字段的 Provider (如 OIDC 的 id_token)，调用方自行定义类型并在调用处传入。
"""

import math
from enum import Enum
from typing import Any, Optional, Protocol, Tuple, Type, TypeVar, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from oauthflow.secret_values import AccessToken, RefreshToken


T = TypeVar("T", bound="Token")


class TokenType(str, Enum):
    BEARER = "bearer"
    MAC = "mac"


@runtime_checkable
class Token(Protocol):
    """可反序列化的 Token 形状。"""

    access_token: AccessToken
    token_type: str
    expires_in: Optional[int]
    refresh_token: Optional[RefreshToken]
    scopes: Optional[Tuple[str, ...]]

    @classmethod
    def from_json(cls: Type[T], data: Any) -> T:
        """从已解析的 JSON 对象构建 Token，失败时抛出 ValueError (含 pydantic.ValidationError)。"""
        ...


# ── 字段解析工具 ──────────────────────────────────────

def parse_seconds(value: Any) -> Optional[int]:
    """
    兼容数字与数字字符串 ("3600")，部分非标准服务器会把 expires_in 作为字符串返回。
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("expires_in must be a number")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise ValueError(f"expires_in is not numeric: {value!r}") from None
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"expires_in must be finite: {value!r}")
        return int(value)
    raise ValueError(f"expires_in has unsupported type {type(value).__name__}")


def parse_scopes(value: Any) -> Optional[Tuple[str, ...]]:
    """将空格分隔的 scope 字符串解析为元组。"""
    if value is None:
        return None
    if isinstance(value, str):
        return tuple(s for s in value.split(" ") if s)
    if isinstance(value, (list, tuple)):
        return tuple(str(s) for s in value)
    raise ValueError(f"scope has unsupported type {type(value).__name__}")


# ── 标准 Token ────────────────────────────────────────

class StandardToken(BaseModel):
    """
    RFC 6749 §5.1 标准 Token 响应。

    未识别的字段一律忽略。expires_in 表示从收到响应起的秒数。
    """
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    access_token: AccessToken
    token_type: str
    expires_in: Optional[int] = Field(default=None, ge=0)
    refresh_token: Optional[RefreshToken] = None
    scopes: Optional[Tuple[str, ...]] = Field(default=None, alias="scope")

    @field_validator("access_token")
    @classmethod
    def _non_empty(cls, value: AccessToken) -> AccessToken:
        if not value.get_secret_value():
            raise ValueError("access_token must not be empty")
        return value

    @field_validator("expires_in", mode="before")
    @classmethod
    def _numeric_expires_in(cls, value: Any) -> Optional[int]:
        return parse_seconds(value)

    @field_validator("scopes", mode="before")
    @classmethod
    def _space_delimited(cls, value: Any) -> Optional[Tuple[str, ...]]:
        return parse_scopes(value)

    @classmethod
    def from_json(cls, data: Any) -> "StandardToken":
        return cls.model_validate(data)

    @property
    def is_bearer(self) -> bool:
        return self.token_type.lower() == TokenType.BEARER.value

    def expires_at(self, received_at: float) -> Optional[float]:
        """根据收到响应的时间戳计算绝对过期时间。"""
        if self.expires_in is None:
            return None
        return received_at + self.expires_in
