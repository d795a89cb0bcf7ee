# =============================================================================
# tests/test_businesses.py - Business Listing Tests
# =============================================================================

import pytest
from pydantic import ValidationError

from marketplace.modules.businesses.schemas import BusinessCreate
from tests.conftest import sign_in

VALID_BUSINESS = {
    "name": "Corner Cafe",
    "address": "1 Main St",
    "description": "Coffee and pastries",
    "email": "hello@cornercafe.com",
    "location": "Lisbon",
    "instagram_url": "https://instagram.com/cornercafe",
}


class TestBusinessSchema:
    """Test business form rules."""

    def test_valid_business(self):
        business = BusinessCreate(**VALID_BUSINESS)
        assert business.email == VALID_BUSINESS["email"]

    @pytest.mark.parametrize(
        "field,value,message",
        [
            ("name", "", "Name is required"),
            ("address", " ", "Address is required"),
            ("description", "", "Description is required"),
            ("location", "", "Location is required"),
            ("instagram_url", "https://x.com/cafe", "Invalid Instagram URL"),
        ],
    )
    def test_invalid_fields(self, field, value, message):
        with pytest.raises(ValidationError) as exc_info:
            BusinessCreate(**{**VALID_BUSINESS, field: value})
        assert message in str(exc_info.value)

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            BusinessCreate(**{**VALID_BUSINESS, "email": "not-an-email"})


class TestBusinessAccount:
    """Test /account/business for the signed-in user."""

    def test_email_defaults_to_profile_email(self, client, complete_user):
        sign_in(client, complete_user)
        body = {k: v for k, v in VALID_BUSINESS.items() if k != "email"}
        response = client.post("/account/business", json=body)
        assert response.status_code == 201
        assert response.json()["email"] == complete_user["email"]

    def test_create_update_delete(self, client, backend, complete_user):
        sign_in(client, complete_user)
        assert client.post("/account/business", json=VALID_BUSINESS).status_code == 201
        assert client.post("/account/business", json=VALID_BUSINESS).status_code == 409

        response = client.put("/account/business", json={"name": "Corner Cafe & Bar"})
        assert response.json()["name"] == "Corner Cafe & Bar"
        assert response.json()["email"] == VALID_BUSINESS["email"]

        assert client.delete("/account/business").status_code == 204
        assert complete_user["id"] not in backend.tables["businesses"]

    def test_user_may_hold_both_listings(self, client, complete_user):
        from tests.test_creators import VALID_CREATOR

        sign_in(client, complete_user)
        client.post("/account/business", json=VALID_BUSINESS)
        client.post("/account/creator", json=VALID_CREATOR)
        account = client.get("/account").json()
        assert account["has_creator_profile"] and account["has_business_profile"]

    def test_sign_out_drops_listings_from_account(self, client, complete_user):
        sign_in(client, complete_user)
        client.post("/account/business", json=VALID_BUSINESS)
        client.post("/auth/signout")
        assert client.get("/account").status_code == 303


class TestBusinessDirectory:
    def test_public_listing(self, client, backend):
        backend.tables["businesses"]["b1"] = {**VALID_BUSINESS, "id": "b1", "created_at": "2024-02-01T00:00:00"}
        response = client.get("/businesses")
        assert response.status_code == 200
        assert response.json()[0]["name"] == "Corner Cafe"
        assert client.get("/businesses/b1").status_code == 200
