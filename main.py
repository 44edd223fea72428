"""
oauthflow 命令行示例：对 config/providers.yaml 中的 Provider 走一遍授权流程。

    python main.py spotify                 # Authorization Code
    python main.py spotify --pkce          # Authorization Code + PKCE
    python main.py msgraph --client-credentials

授权码流程中需要把浏览器最终跳转到的 redirect URL 粘贴回终端。
"""

import argparse
import asyncio
import logging
import sys
from urllib.parse import parse_qs, urlsplit

from oauthflow.auth.csrf import verify_state
from oauthflow.auth.pkce import PKCEUtils
from oauthflow.config_loader import load_config
from oauthflow.errors import OAuthError
from oauthflow.secret_values import State
from oauthflow.token import StandardToken
from oauthflow.transport import HttpxTransport

# 日志配置
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def parse_redirect(redirect_url: str) -> tuple[str | None, str | None]:
    """从回调 URL 中取出 code 与 state。"""
    query = parse_qs(urlsplit(redirect_url.strip()).query)
    code = query.get("code", [None])[0]
    state = query.get("state", [None])[0]
    return code, state


def print_token(token: StandardToken):
    print(f"token_type:    {token.token_type}")
    print(f"access_token:  <{len(token.access_token.get_secret_value())} chars>")
    print(f"expires_in:    {token.expires_in}")
    print(f"refresh_token: {'yes' if token.refresh_token else 'no'}")
    print(f"scopes:        {' '.join(token.scopes) if token.scopes else '-'}")


async def run(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    provider = config.get_provider(args.provider)
    if provider is None:
        logger.error(f"未找到 Provider: {args.provider}")
        return 2

    client = provider.to_client()

    async with HttpxTransport() as transport:
        if args.client_credentials:
            token = await client.exchange_client_credentials().execute(transport)
            print_token(token)
            return 0

        state = State.new_random()
        extra = dict(provider.authorize_params())
        verifier = None
        if args.pkce:
            verifier = PKCEUtils.generate_verifier()
            extra.update(PKCEUtils.authorize_params(verifier))

        print(f"Browse to: {client.authorize_url(state, extra)}")
        redirect_url = input("Paste the redirect URL: ")
        code, received_state = parse_redirect(redirect_url)

        verify_state(state, received_state)
        if not code:
            logger.error("回调 URL 中没有 code 参数")
            return 1

        request = client.exchange_code(code)
        if verifier:
            request.param("code_verifier", verifier)

        token = await request.execute(transport)
        print_token(token)
    return 0


def main():
    """主入口。"""
    parser = argparse.ArgumentParser(description="Testing out OAuth 2.0 flows")
    parser.add_argument("provider", help="Provider id in the config file")
    parser.add_argument("--config", default=None, help="Config file or directory")
    parser.add_argument("--pkce", action="store_true", help="Attach PKCE parameters")
    parser.add_argument("--client-credentials", action="store_true", help="Use the client credentials grant")
    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(run(args)))
    except OAuthError as e:
        logger.error(f"OAuth 流程失败: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
