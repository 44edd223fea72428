from main import parse_redirect, print_token
from oauthflow.token import StandardToken


class TestCli:
    def test_print_token_hides_value_but_shows_length(self, capsys):
        token = StandardToken.from_json({"access_token": "abcdef", "token_type": "bearer", "expires_in": 60})
        print_token(token)
        out = capsys.readouterr().out
        assert "abcdef" not in out
        assert "access_token:  <6 chars>" in out
        assert "expires_in:    60" in out

    def test_parse_redirect(self):
        code, state = parse_redirect("http://localhost:8080/callback?code=c1&state=s1\n")
        assert (code, state) == ("c1", "s1")

    def test_parse_redirect_without_code(self):
        assert parse_redirect("http://localhost:8080/callback?error=access_denied") == (None, None)
