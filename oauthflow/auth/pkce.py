"""
PKCE (Proof Key for Code Exchange) 工具类。
符合 RFC 7636 标准。

这里只负责生成参数：challenge 作为授权 URL 的额外参数附加，
verifier 由调用方保存并在换取 Token 时通过 request.param("code_verifier", ...) 附加。
"""

import base64
import hashlib
import secrets
from typing import List, Tuple

from oauthflow.auth.oauth_types import CodeChallengeMethod, OAuthParams
from oauthflow.errors import ConfigurationError


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


class PKCEUtils:
    @staticmethod
    def generate_verifier(num_bytes: int = 32) -> str:
        """
        生成 code_verifier。
        随机字节数必须在 32 到 96 之间，base64url 编码后长度为 43 到 128 个字符。
        """
        if not (32 <= num_bytes <= 96):
            raise ConfigurationError("code_verifier must be generated from 32 to 96 random bytes")
        return _b64url(secrets.token_bytes(num_bytes))

    @staticmethod
    def generate_challenge(verifier: str, method: CodeChallengeMethod = CodeChallengeMethod.S256) -> str:
        """
        根据 verifier 生成 code_challenge。
        """
        if method == CodeChallengeMethod.S256:
            digest = hashlib.sha256(verifier.encode("ascii")).digest()
            return _b64url(digest)
        elif method == CodeChallengeMethod.PLAIN:
            return verifier
        else:
            raise ConfigurationError(f"Unsupported code_challenge_method: {method}")

    @staticmethod
    def authorize_params(
        verifier: str, method: CodeChallengeMethod = CodeChallengeMethod.S256
    ) -> List[Tuple[str, str]]:
        """授权 URL 需要附加的额外参数。"""
        return [
            (OAuthParams.CODE_CHALLENGE_METHOD, method.value),
            (OAuthParams.CODE_CHALLENGE, PKCEUtils.generate_challenge(verifier, method)),
        ]
