"""Security tests: tokens, webhook signatures, model validators."""

import base64
import hashlib
import hmac
from datetime import timedelta
from decimal import Decimal

import pytest

from app.core.exceptions import AuthorizationError
from app.core.rbac import ActorContext, UserRole
from app.core.security import (
    compute_webhook_signature, create_access_token, decode_access_token, verify_webhook_signature,
)
from app.models.validators import (
    non_negative, positive, validate_dict, validate_marketplace_config, validate_size_prices,
)


# ============== Token Tests ==============

class TestAccessToken:
    def test_round_trip_claims(self):
        token = create_access_token({"sub": "waiter-1", "role": "WAITER", "branch_id": "b1"})
        payload = decode_access_token(token)
        assert payload["sub"] == "waiter-1"
        assert payload["role"] == "WAITER"
        assert "jti" in payload

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "waiter-1"}, expires_delta=timedelta(seconds=-5))
        assert decode_access_token(token) is None

    def test_tampered_token_rejected(self):
        token = create_access_token({"sub": "waiter-1"})
        assert decode_access_token(token[:-2] + "xx") is None


# ============== Webhook Signature Tests ==============

class TestWebhookSignature:
    payload = b'{"order_id": "SW-1"}'
    secret = "shh"

    def test_hex_matches_hmac_sha256(self):
        expected = hmac.new(b"shh", self.payload, hashlib.sha256).hexdigest()
        assert compute_webhook_signature(self.payload, self.secret) == expected

    def test_base64_encoding(self):
        digest = hmac.new(b"shh", self.payload, hashlib.sha256).digest()
        assert compute_webhook_signature(self.payload, self.secret, "base64") == base64.b64encode(digest).decode()

    def test_verify(self):
        signature = compute_webhook_signature(self.payload, self.secret)
        assert verify_webhook_signature(self.payload, signature, self.secret) is True
        assert verify_webhook_signature(self.payload, f"  {signature}\n", self.secret) is True

    @pytest.mark.parametrize("signature", [None, "", "abc123"])
    def test_verify_rejects(self, signature):
        assert verify_webhook_signature(self.payload, signature, self.secret) is False

    def test_verify_rejects_other_secret(self):
        signature = compute_webhook_signature(self.payload, "other")
        assert verify_webhook_signature(self.payload, signature, self.secret) is False


# ============== Actor Tests ==============

class TestActorContext:
    actor = ActorContext(staff_id="w1", role=UserRole.WAITER, branch_id="b1")

    def test_require_role(self):
        self.actor.require(UserRole.CASHIER, UserRole.WAITER)
        with pytest.raises(AuthorizationError):
            self.actor.require(UserRole.KITCHEN)

    def test_require_branch(self):
        self.actor.require_branch("b1")
        with pytest.raises(AuthorizationError):
            self.actor.require_branch("b2")


# ============== Validator Tests ==============

class TestNonNegative:
    def test_zero_allowed(self):
        assert non_negative("qty", Decimal("0")) == Decimal("0")

    def test_negative_rejected(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            non_negative("qty", Decimal("-1"))

    def test_none_allowed(self):
        assert non_negative("qty", None) is None


class TestPositive:
    def test_positive_allowed(self):
        assert positive("qty", 1) == 1

    def test_zero_rejected(self):
        with pytest.raises(ValueError, match="must be positive"):
            positive("qty", 0)

    def test_non_numeric_rejected(self):
        with pytest.raises(ValueError, match="must be numeric"):
            positive("qty", "two")


class TestValidateDict:
    def test_dict_allowed(self):
        assert validate_dict("config", {"SWIGGY": {}}) == {"SWIGGY": {}}

    def test_list_rejected(self):
        with pytest.raises(ValueError, match="must be a dict"):
            validate_dict("config", ["SWIGGY"])


class TestSizePrices:
    def test_prices_allowed(self):
        assert validate_size_prices("size_prices", {"HALF": 120, "FULL": 200}) == {"HALF": 120, "FULL": 200}

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError, match=r"size_prices\[HALF\] cannot be negative"):
            validate_size_prices("size_prices", {"HALF": -1})

    def test_missing_price_rejected(self):
        with pytest.raises(ValueError, match="has no price"):
            validate_size_prices("size_prices", {"FULL": None})


class TestMarketplaceConfig:
    def test_config_allowed(self):
        config = {"SWIGGY": {"webhook_secret": "s"}, "DUNZO": {}}
        assert validate_marketplace_config("marketplace_config", config) == config

    def test_platform_settings_must_be_dict(self):
        with pytest.raises(ValueError, match="must be a dict"):
            validate_marketplace_config("marketplace_config", {"SWIGGY": "secret"})

    def test_secret_must_be_string(self):
        with pytest.raises(ValueError, match="webhook_secret must be a string"):
            validate_marketplace_config("marketplace_config", {"ZOMATO": {"webhook_secret": 42}})
