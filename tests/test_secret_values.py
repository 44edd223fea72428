import pytest
from pydantic import SecretStr

from oauthflow.secret_values import (
    AccessToken,
    AuthorizationCode,
    ClientSecret,
    RefreshToken,
    ResourceOwnerPassword,
    State,
)


class TestRedaction:
    @pytest.mark.parametrize(
        "cls", [ClientSecret, AccessToken, RefreshToken, AuthorizationCode, ResourceOwnerPassword, State]
    )
    def test_repr_and_str_redacted(self, cls):
        value = cls("top-secret")
        assert "top-secret" not in repr(value)
        assert "top-secret" not in str(value)
        assert f"{value}" != "top-secret"
        assert value.get_secret_value() == "top-secret"

    def test_equality(self):
        assert ClientSecret("a") == ClientSecret("a")
        assert ClientSecret("a") != ClientSecret("b")

    def test_coerce(self):
        assert AccessToken.coerce("x") == AccessToken("x")
        assert AccessToken.coerce(SecretStr("x")) == AccessToken("x")
        assert ClientSecret.coerce_optional(None) is None

    def test_coerce_rejects_non_strings(self):
        with pytest.raises(TypeError):
            ClientSecret.coerce(123)


class TestState:
    def test_random_state_length(self):
        state = State.new_random()
        # 16 bytes -> 22 chars of unpadded url-safe base64
        assert len(state.get_secret_value()) == 22
        assert "=" not in state.get_secret_value()

    def test_random_states_differ(self):
        assert State.new_random() != State.new_random()
