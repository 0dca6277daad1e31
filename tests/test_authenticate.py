"""
HR Portal - Authentication Dependency Tests

Integration tests for bearer-token authentication through the FastAPI
application: header parsing, token failure mapping, optional mode,
correlation IDs and error response shape.

Run with: pytest tests/test_authenticate.py -v
"""

from datetime import timedelta

import pytest

from hrportal.auth.dependencies import TOKEN_ERROR_RESPONSES, extract_bearer_token
from hrportal.auth.models import Role
from hrportal.errors import AuthenticationError, TokenErrorKind
from hrportal.gateway.middleware import REQUEST_ID_HEADER


class TestExtractBearerToken:
    """Unit tests for Authorization header parsing."""

    def test_valid_header(self):
        assert extract_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self):
        assert extract_bearer_token("bEaReR abc") == "abc"

    @pytest.mark.parametrize("header", ["Bearer\tabc.def.ghi", "Bearer  abc.def.ghi", " Bearer abc.def.ghi "])
    def test_any_whitespace_separates_scheme_and_token(self, header):
        assert extract_bearer_token(header) == "abc.def.ghi"

    @pytest.mark.parametrize(
        "header,code",
        [
            (None, "MISSING_AUTH_HEADER"),
            ("", "MISSING_AUTH_HEADER"),
            ("   ", "MISSING_AUTH_HEADER"),
            ("Bearer a b", "INVALID_AUTH_HEADER_FORMAT"),
            ("abc.def.ghi", "INVALID_AUTH_HEADER_FORMAT"),
            ("Basic xyz", "INVALID_AUTH_SCHEME"),
            ("Token abc", "INVALID_AUTH_SCHEME"),
            ("Bearer", "MISSING_TOKEN"),
            ("Bearer ", "MISSING_TOKEN"),
            ("Bearer\t", "MISSING_TOKEN"),
        ],
    )
    def test_rejections(self, header, code):
        with pytest.raises(AuthenticationError) as exc_info:
            extract_bearer_token(header)

        assert exc_info.value.code == code
        assert exc_info.value.status_code == 401

    def test_every_failure_kind_has_a_response(self):
        assert set(TOKEN_ERROR_RESPONSES) == set(TokenErrorKind)


class TestAuthenticate:
    """Integration tests for the mandatory authentication dependency."""

    def test_valid_token_attaches_principal(self, client, issue_token, auth_headers):
        token = issue_token(Role.EMPLOYEE, user_id="u1", email="a@b.com")

        response = client.get("/me", headers=auth_headers(token))

        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == "u1"
        assert data["email"] == "a@b.com"
        assert data["role"] == "EMPLOYEE"

    def test_tab_separated_header_authenticates(self, client, issue_token):
        token = issue_token(Role.EMPLOYEE, user_id="u1")

        response = client.get("/me", headers={"Authorization": f"Bearer\t{token}"})

        assert response.status_code == 200
        assert response.json()["user_id"] == "u1"

    def test_missing_header(self, client):
        response = client.get("/me")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "MISSING_AUTH_HEADER"
        assert data["path"] == "/me"
        assert data["timestamp"].endswith("Z")

    def test_basic_scheme_rejected_before_authorization(self, client):
        """A Basic header never reaches the role check."""
        response = client.get("/admin", headers={"Authorization": "Basic xyz"})

        assert response.status_code == 401
        data = response.json()
        assert data["code"] == "INVALID_AUTH_SCHEME"
        assert "userRole" not in data
        assert "requiredRoles" not in data

    def test_malformed_token(self, client, auth_headers):
        response = client.get("/me", headers=auth_headers("not-a-jwt"))

        assert response.status_code == 401
        assert response.json()["code"] == "MALFORMED_TOKEN"

    def test_expired_token(self, client, app, auth_headers):
        token = app.state.token_service.issue_access(
            "u1", "a@b.com", Role.EMPLOYEE, expires_delta=timedelta(seconds=-60)
        )

        response = client.get("/me", headers=auth_headers(token))

        assert response.status_code == 401
        assert response.json()["code"] == "TOKEN_EXPIRED"

    def test_refresh_token_rejected(self, client, app, auth_headers):
        token = app.state.token_service.issue_refresh("u1", "a@b.com")

        response = client.get("/me", headers=auth_headers(token))

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN_TYPE"

    def test_tampered_token(self, client, issue_token, auth_headers):
        token = issue_token(Role.EMPLOYEE)
        header, payload, signature = token.split(".")
        middle = len(signature) // 2
        replacement = "A" if signature[middle] != "A" else "B"
        tampered = f"{header}.{payload}.{signature[:middle]}{replacement}{signature[middle + 1:]}"

        response = client.get("/me", headers=auth_headers(tampered))

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    def test_client_message_is_generic(self, client, auth_headers):
        response = client.get("/me", headers=auth_headers("not-a-jwt"))

        message = response.json()["message"]
        assert "Traceback" not in message
        assert "secret" not in message.lower()

    def test_unexpected_error_returns_500(self, client, app, issue_token, auth_headers):
        token = issue_token(Role.EMPLOYEE)
        app.state.token_service = None

        response = client.get("/me", headers=auth_headers(token))

        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "AUTHENTICATION_ERROR"
        assert "TokenService" not in data["message"]


class TestOptionalAuthentication:
    """Optional mode leaves the principal unset instead of failing."""

    def test_anonymous_request_continues(self, client):
        response = client.get("/announcements")

        assert response.status_code == 200
        assert response.json() == {"authenticated": False, "user_id": None}

    def test_invalid_token_continues_anonymously(self, client, auth_headers):
        response = client.get("/announcements", headers=auth_headers("not-a-jwt"))

        assert response.status_code == 200
        assert response.json()["authenticated"] is False

    def test_invalid_scheme_continues_anonymously(self, client):
        response = client.get("/announcements", headers={"Authorization": "Basic xyz"})

        assert response.status_code == 200
        assert response.json()["authenticated"] is False

    def test_valid_token_attaches_principal(self, client, issue_token, auth_headers):
        response = client.get("/announcements", headers=auth_headers(issue_token(user_id="u7")))

        assert response.status_code == 200
        assert response.json() == {"authenticated": True, "user_id": "u7"}


class TestCorrelationMiddleware:
    """Correlation IDs and security headers."""

    def test_generates_request_id(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert len(response.headers[REQUEST_ID_HEADER]) == 36

    def test_echoes_inbound_request_id(self, client):
        response = client.get("/health", headers={REQUEST_ID_HEADER: "req-123"})

        assert response.headers[REQUEST_ID_HEADER] == "req-123"

    def test_replaces_unsafe_request_id(self, client):
        response = client.get("/health", headers={REQUEST_ID_HEADER: "bad id with spaces"})

        assert response.headers[REQUEST_ID_HEADER] != "bad id with spaces"
        assert len(response.headers[REQUEST_ID_HEADER]) == 36

    def test_error_responses_carry_request_id(self, client):
        response = client.get("/me", headers={REQUEST_ID_HEADER: "trace-42"})

        assert response.status_code == 401
        assert response.headers[REQUEST_ID_HEADER] == "trace-42"

    def test_security_headers(self, client):
        response = client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Cache-Control"] == "no-store"

    def test_health(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["environment"] == "test"
