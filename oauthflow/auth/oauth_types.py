"""
OAuth 2.0 标准参数与常量定义 (RFC 6749)。
"""

from enum import Enum


class GrantType(str, Enum):
    AUTHORIZATION_CODE = "authorization_code"
    PASSWORD = "password"
    CLIENT_CREDENTIALS = "client_credentials"
    REFRESH_TOKEN = "refresh_token"


class ResponseType(str, Enum):
    CODE = "code"
    TOKEN = "token"


class CodeChallengeMethod(str, Enum):
    S256 = "S256"
    PLAIN = "plain"


class TokenEndpointAuthMethod(str, Enum):
    """客户端在 Token Endpoint 的认证方式 (RFC 6749 §2.3.1)。"""
    CLIENT_SECRET_BASIC = "client_secret_basic"
    CLIENT_SECRET_POST = "client_secret_post"


# 标准 OAuth 参数名常量
class OAuthParams:
    CLIENT_ID = "client_id"
    CLIENT_SECRET = "client_secret"
    REDIRECT_URI = "redirect_uri"
    RESPONSE_TYPE = "response_type"
    SCOPE = "scope"
    STATE = "state"
    CODE = "code"
    GRANT_TYPE = "grant_type"
    USERNAME = "username"
    PASSWORD = "password"
    CODE_VERIFIER = "code_verifier"
    CODE_CHALLENGE = "code_challenge"
    CODE_CHALLENGE_METHOD = "code_challenge_method"
    REFRESH_TOKEN = "refresh_token"
    ACCESS_TOKEN = "access_token"
    TOKEN_TYPE = "token_type"
    EXPIRES_IN = "expires_in"
    ERROR = "error"
    ERROR_DESCRIPTION = "error_description"
    ERROR_URI = "error_uri"


CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_FORM = "application/x-www-form-urlencoded"
