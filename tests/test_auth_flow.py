# =============================================================================
# tests/test_auth_flow.py - Auth Flow Page Tests
# =============================================================================
# End-to-end flows through the FastAPI app: the gate middleware, the auth
# pages and the session cookie, backed by the in-memory fakes.
# =============================================================================

from marketplace.config import settings
from tests.conftest import sign_in

COOKIE = settings.auth_cookie_name


# =============================================================================
# Route gate over HTTP
# =============================================================================

class TestGateRedirects:
    """Test redirects the middleware issues before any page runs."""

    def test_protected_route_requires_sign_in(self, client):
        response = client.get("/dashboard", params={"tab": "1"})
        assert response.status_code == 303
        assert response.headers["location"] == "/auth/signin?redirectTo=%2Fdashboard%3Ftab%3D1"

    def test_public_routes_need_no_session(self, client):
        assert client.get("/creators").status_code == 200
        assert client.get("/health").json() == {"status": "healthy"}

    def test_user_without_profile_is_sent_to_complete_profile(self, client, incomplete_user):
        response = sign_in(client, incomplete_user)
        assert response.status_code == 303
        assert response.headers["location"] == "/auth/complete-profile"

        for path in ("/dashboard", "/account", "/auth/signin", "/auth"):
            response = client.get(path)
            assert response.status_code == 303, path
            assert response.headers["location"] == "/auth/complete-profile"

    def test_complete_user_visiting_auth_lands_on_dashboard(self, client, complete_user):
        sign_in(client, complete_user)
        response = client.get("/auth")
        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"

    def test_complete_user_sees_dashboard(self, client, complete_user):
        sign_in(client, complete_user)
        response = client.get("/dashboard")
        assert response.status_code == 200
        body = response.json()
        assert body["screen"] == "dashboard"
        assert body["state"] == "authenticated_complete"
        assert body["profile"]["username"] == "alice"
        assert "access_token" not in body["user"]

    def test_session_failure_redirects_with_error(self, client, complete_user, backend):
        sign_in(client, complete_user)
        backend.fail_get_session = True
        response = client.get("/dashboard")
        assert response.status_code == 303
        assert response.headers["location"].startswith("/auth/signin?redirectTo=%2Fdashboard&error=")

    def test_complete_user_posting_to_auth_form_is_sent_to_dashboard_screen(self, client, complete_user):
        sign_in(client, complete_user)
        response = client.post("/auth/signin", data={"email": complete_user["email"], "password": "password123"})
        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"

        landing = client.get(response.headers["location"])
        assert landing.status_code == 200
        assert landing.json()["screen"] == "dashboard"

    def test_anonymous_post_to_protected_route_lands_on_sign_in_screen(self, client):
        response = client.post("/account/creator", json={"description": "hi"})
        assert response.status_code == 303
        assert response.headers["location"] == "/auth/signin?redirectTo=%2Faccount%2Fcreator"

        landing = client.get(response.headers["location"])
        assert landing.status_code == 200
        assert landing.json()["screen"] == "signin"
        assert landing.json()["data"]["redirect_to"] == "/account/creator"

    def test_security_headers_present(self, client):
        response = client.get("/auth/signin")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"


# =============================================================================
# Sign in
# =============================================================================

class TestSignIn:
    """Test password sign in."""

    def test_sign_in_screen_shows_decoded_error(self, client):
        response = client.get("/auth/signin", params={"error": "Google sign in failed"})
        assert response.status_code == 200
        assert response.json()["screen"] == "signin"
        assert response.json()["error"] == "Google sign in failed"

    def test_signup_mode(self, client):
        assert client.get("/auth", params={"mode": "signup"}).json()["screen"] == "signup"

    def test_sign_in_sets_session_cookie(self, client, complete_user):
        response = sign_in(client, complete_user)
        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"
        assert client.cookies.get(COOKIE)

    def test_sign_in_honours_return_path(self, client, complete_user):
        response = sign_in(client, complete_user, redirect_to="/account")
        assert response.headers["location"] == "/account"

    def test_sign_in_ignores_offsite_return_path(self, client, complete_user):
        response = sign_in(client, complete_user, redirect_to="https://evil.test/")
        assert response.headers["location"] == "/dashboard"

    def test_bad_credentials_are_inline_errors(self, client, complete_user):
        response = client.post("/auth/signin", data={"email": complete_user["email"], "password": "wrong"})
        assert response.status_code == 401
        assert response.json()["screen"] == "signin"
        assert response.json()["error"] == "Invalid login credentials"
        assert client.cookies.get(COOKIE) is None

    def test_invalid_email_is_rejected_locally(self, client):
        response = client.post("/auth/signin", data={"email": "nope", "password": "x"})
        assert response.status_code == 422
        assert response.json()["screen"] == "signin"

    def test_sign_in_accepts_form_encoded_body(self, client, complete_user):
        response = client.post(
            "/auth/signin",
            content=f"email={complete_user['email']}&password=password123".encode(),
            headers={"content-type": "application/x-www-form-urlencoded"},
        )
        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"

    def test_sign_in_screen_shows_session_failure(self, client, complete_user, backend):
        sign_in(client, complete_user)
        backend.fail_get_session = True
        response = client.get("/auth/signin")
        assert response.status_code == 200
        assert response.json()["error"] == "Network error while loading session"

    def test_query_error_wins_over_session_failure(self, client, complete_user, backend):
        sign_in(client, complete_user)
        backend.fail_get_session = True
        response = client.get("/auth/signin", params={"error": "Google sign in failed"})
        assert response.json()["error"] == "Google sign in failed"


# =============================================================================
# Sign up and email confirmation
# =============================================================================

class TestSignUp:
    """Test sign up through confirmation and profile completion."""

    def test_sign_up_confirm_and_complete_profile(self, client, backend):
        backend.require_email_confirmation = True

        response = client.post(
            "/auth/signup",
            data={"email": "a@b.com", "password": "password123", "username": "newuser"},
        )
        assert response.status_code == 303
        assert response.headers["location"] == "/auth/check-email"
        assert backend.user_by_email("a@b.com")["redirect_url"] == "http://localhost:3000/auth/callback"

        assert client.get("/auth/check-email").json()["screen"] == "check-email"
        recheck = client.post("/auth/check-email")
        assert recheck.status_code == 200
        assert recheck.json()["notice"]

        code = backend.confirm_email("a@b.com")
        response = client.get("/auth/callback", params={"code": code})
        assert response.status_code == 303
        assert response.headers["location"] == "/auth/complete-profile"

        screen = client.get("/auth/complete-profile").json()
        assert screen["screen"] == "complete-profile"
        assert screen["data"]["username"] == "newuser"
        assert screen["data"]["availability"]["available"] is True

        response = client.post("/auth/complete-profile", data={"username": "newuser"})
        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"

        user = backend.user_by_email("a@b.com")
        assert backend.tables["profiles"][user["id"]]["username"] == "newuser"
        assert user["metadata"]["profile_completed"] is True

        dashboard = client.get("/dashboard")
        assert dashboard.status_code == 200
        assert dashboard.json()["profile"]["username"] == "newuser"

    def test_sign_up_with_immediate_session_creates_profile(self, client, backend):
        response = client.post(
            "/auth/signup",
            data={"email": "c@d.com", "password": "password123", "username": "carol"},
            files={"photo": ("me.png", b"\x89PNG-data", "image/png")},
        )
        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"

        user = backend.user_by_email("c@d.com")
        profile = backend.tables["profiles"][user["id"]]
        assert profile["username"] == "carol"
        assert profile["profile_photo_url"].startswith("https://blobs.example.test/profile-photos/signup-")
        assert user["metadata"]["profile_photo_url"] == profile["profile_photo_url"]

    def test_sign_up_rejects_taken_username_before_any_write(self, client, backend, complete_user):
        response = client.post(
            "/auth/signup",
            data={"email": "x@y.com", "password": "password123", "username": "alice"},
        )
        assert response.status_code == 422
        assert response.json()["screen"] == "signup"
        assert response.json()["error"] == "Username is already taken"
        assert backend.user_by_email("x@y.com") is None
        assert backend.blobs.objects == {}

    def test_sign_up_validates_password_locally(self, client, backend):
        response = client.post(
            "/auth/signup",
            data={"email": "x@y.com", "password": "short", "username": "someone"},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "Password must be at least 8 characters"
        assert backend.user_by_email("x@y.com") is None

    def test_sign_up_rejects_non_image_photo(self, client, backend):
        response = client.post(
            "/auth/signup",
            data={"email": "x@y.com", "password": "password123", "username": "someone"},
            files={"photo": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 422
        assert backend.user_by_email("x@y.com") is None

    def test_callback_without_params_goes_to_sign_in(self, client):
        response = client.get("/auth/callback")
        assert response.status_code == 303
        assert response.headers["location"] == "/auth/signin"

    def test_callback_error_shows_blocking_screen(self, client):
        response = client.get("/auth/callback", params={"error": "access_denied", "error_description": "Link expired"})
        assert response.status_code == 400
        body = response.json()
        assert body["screen"] == "auth-error"
        assert body["error"] == "Link expired"
        assert body["action"] == {"label": "Return to Sign In", "href": "/auth/signin"}

    def test_callback_resolver_failure_shows_blocking_screen(self, client, backend, incomplete_user):
        backend.failing_tables.add("profiles")
        code = backend.issue_code(incomplete_user["id"])
        response = client.get("/auth/callback", params={"code": code})
        assert response.status_code == 503
        assert response.json()["screen"] == "auth-error"
        assert response.json()["action"]["href"] == "/auth/signin"

    def test_callback_token_hash(self, client, backend, complete_user):
        token = backend.issue_code(complete_user["id"])
        response = client.get("/auth/callback", params={"token_hash": token, "type": "signup"})
        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"


# =============================================================================
# OAuth
# =============================================================================

class TestOAuth:
    """Test the Google sign in round trip."""

    def test_google_sign_in_redirects_to_provider(self, client):
        response = client.get("/auth/google-signin")
        assert response.status_code == 303
        assert response.headers["location"].startswith("https://auth.example.test/authorize?provider=google")

    def test_google_sign_in_failure_returns_to_sign_in(self, client, backend):
        backend.oauth_fails = True
        response = client.get("/auth/google-signin")
        assert response.headers["location"] == "/auth/signin?error=Google+sign+in+failed"

    def test_provider_error_returns_decoded_message_without_session(self, client):
        response = client.get(
            "/auth/oauth-callback",
            params={"error": "access_denied", "error_description": "User denied access"},
        )
        assert response.status_code == 303
        assert response.headers["location"] == "/auth/signin?error=User+denied+access"
        assert client.cookies.get(COOKIE) is None

        screen = client.get(response.headers["location"]).json()
        assert screen["error"] == "User denied access"

    def test_new_oauth_user_goes_to_complete_profile(self, client, backend):
        code = backend.oauth_login("dora@example.com", full_name="Dora Explorer")
        response = client.get("/auth/oauth-callback", params={"code": code})
        assert response.status_code == 303
        assert response.headers["location"] == "/auth/complete-profile"

        screen = client.get("/auth/complete-profile").json()
        assert screen["data"]["username"] == "doraexplorer"

    def test_returning_oauth_user_goes_to_dashboard(self, client, backend, complete_user):
        code = backend.oauth_login(complete_user["email"])
        response = client.get("/auth/oauth-callback", params={"code": code})
        assert response.headers["location"] == "/dashboard"

    def test_bad_code_returns_to_sign_in(self, client):
        response = client.get("/auth/oauth-callback", params={"code": "bogus"})
        assert response.status_code == 303
        assert response.headers["location"] == "/auth/signin?error=Authentication+failed"


# =============================================================================
# Complete profile
# =============================================================================

class TestCompleteProfile:
    """Test the profile completion form."""

    def test_requires_session(self, client):
        response = client.get("/auth/complete-profile")
        assert response.status_code == 303
        assert response.headers["location"] == "/auth/signin"

    def test_suggests_username_from_full_name(self, client, incomplete_user):
        sign_in(client, incomplete_user)
        body = client.get("/auth/complete-profile").json()
        assert body["data"]["username"] == "bobbuilder"
        assert body["data"]["email"] == incomplete_user["email"]

    def test_taken_username_rejected_without_write(self, client, backend, complete_user, incomplete_user):
        sign_in(client, incomplete_user)
        response = client.post(
            "/auth/complete-profile",
            data={"username": "alice"},
            files={"photo": ("me.png", b"\x89PNG-data", "image/png")},
        )
        assert response.status_code == 422
        assert response.json()["screen"] == "complete-profile"
        assert response.json()["error"] == "Username is already taken"
        assert backend.writes == []
        assert backend.blobs.objects == {}

    def test_short_username_rejected_locally(self, client, backend, incomplete_user):
        sign_in(client, incomplete_user)
        response = client.post("/auth/complete-profile", data={"username": "ab"})
        assert response.status_code == 422
        assert response.json()["error"] == "Username must be at least 3 characters"
        assert backend.writes == []

    def test_completion_with_photo(self, client, backend, incomplete_user):
        sign_in(client, incomplete_user)
        response = client.post(
            "/auth/complete-profile",
            data={"username": "bobby"},
            files={"photo": ("me.jpg", b"jpeg-bytes", "image/jpeg")},
        )
        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"
        profile = backend.tables["profiles"][incomplete_user["id"]]
        assert profile["username"] == "bobby"
        assert profile["profile_photo_url"].endswith(".jpg")
        assert client.get("/dashboard").status_code == 200

    def test_fills_in_incomplete_profile_row(self, client, backend, incomplete_user):
        uid = incomplete_user["id"]
        backend.tables["profiles"][uid] = {"id": uid, "username": None, "email": incomplete_user["email"]}
        sign_in(client, incomplete_user)
        response = client.post("/auth/complete-profile", data={"username": "bobby"})
        assert response.status_code == 303
        assert ("profiles", "update") in backend.writes
        assert backend.tables["profiles"][uid]["username"] == "bobby"


# =============================================================================
# Sign out
# =============================================================================

class TestSignOut:
    """Test sign out from any state."""

    def test_sign_out_clears_session(self, client, complete_user):
        sign_in(client, complete_user)
        response = client.post("/auth/signout")
        assert response.status_code == 303
        assert response.headers["location"] == "/auth"
        assert client.cookies.get(COOKIE) is None
        assert client.get("/dashboard").status_code == 303

    def test_sign_out_without_profile(self, client, incomplete_user):
        sign_in(client, incomplete_user)
        response = client.post("/auth/signout")
        assert response.headers["location"] == "/auth"
        assert client.get("/auth/signin").status_code == 200

    def test_sign_out_when_remote_call_fails(self, client, backend, complete_user):
        sign_in(client, complete_user)
        backend.sign_out_fails = True
        response = client.post("/auth/signout")
        assert response.status_code == 303
        assert backend.sign_out_calls == 1
        assert client.cookies.get(COOKIE) is None
        assert client.get("/dashboard").status_code == 303
