"""Tests for request validation."""

from decimal import Decimal

import pytest

from chainweaver.relay import InvalidFieldError, MissingFieldError, validate_transfer
from chainweaver.relay.validation import is_valid_account_id

from conftest import RECEIVER_ID, SIGNER_ID


class TestValidateTransfer:
    """Tests for validate_transfer()."""

    def test_valid_request(self, valid_payload, secret):
        validated = validate_transfer(valid_payload)

        assert validated.transfer.signer_id == SIGNER_ID
        assert validated.transfer.receiver_id == RECEIVER_ID
        assert validated.transfer.amount == Decimal("50")
        assert validated.secret == secret

    def test_repr_hides_secret(self, valid_payload, secret):
        validated = validate_transfer(valid_payload)
        assert secret not in repr(validated)

    @pytest.mark.parametrize("field", ["signerId", "privateKey", "receiverId", "amount"])
    def test_missing_field(self, valid_payload, field):
        """Each absent field is reported by name."""
        del valid_payload[field]

        with pytest.raises(MissingFieldError) as exc_info:
            validate_transfer(valid_payload)

        assert exc_info.value.field == field
        assert str(exc_info.value) == f"Missing required field: {field}."

    def test_null_field_counts_as_missing(self, valid_payload):
        valid_payload["receiverId"] = None

        with pytest.raises(MissingFieldError) as exc_info:
            validate_transfer(valid_payload)

        assert exc_info.value.field == "receiverId"

    @pytest.mark.parametrize("field", ["signerId", "privateKey", "receiverId"])
    @pytest.mark.parametrize("value", ["", 123, ["a"]])
    def test_non_string_fields(self, valid_payload, field, value):
        valid_payload[field] = value

        with pytest.raises(InvalidFieldError) as exc_info:
            validate_transfer(valid_payload)

        assert exc_info.value.field == field
        assert str(exc_info.value) == f"{field} must be a non-empty string."

    @pytest.mark.parametrize("account_id", ["Bot.testnet", "a", "bot..testnet", "bot testnet"])
    def test_invalid_account_id(self, valid_payload, account_id):
        valid_payload["receiverId"] = account_id

        with pytest.raises(InvalidFieldError, match="receiverId is not a valid account ID."):
            validate_transfer(valid_payload)

    @pytest.mark.parametrize("amount", [-5, 0, Decimal("-0.5"), float("nan"), float("inf"), "50", True])
    def test_invalid_amount(self, valid_payload, amount):
        valid_payload["amount"] = amount

        with pytest.raises(InvalidFieldError) as exc_info:
            validate_transfer(valid_payload)

        assert exc_info.value.field == "amount"
        assert str(exc_info.value) == "amount must be a positive number."

    def test_float_amount_uses_shortest_repr(self, valid_payload):
        valid_payload["amount"] = 0.1
        assert validate_transfer(valid_payload).transfer.amount == Decimal("0.1")

    def test_signer_may_equal_receiver(self, valid_payload):
        """No cross-field checks are applied."""
        valid_payload["receiverId"] = valid_payload["signerId"]
        validated = validate_transfer(valid_payload)
        assert validated.transfer.signer_id == validated.transfer.receiver_id

    def test_non_object_body(self):
        with pytest.raises(InvalidFieldError, match="JSON object"):
            validate_transfer(["not", "an", "object"])


class TestAccountIdSyntax:
    """Tests for is_valid_account_id()."""

    @pytest.mark.parametrize(
        "account_id",
        [
            "bot.testnet",
            "my-dao-bot.testnet",
            "a_b.near",
            "ok",
            "98793cd91a3f870fb126f66285808c7e094afcfc4eda8a970f6648cdf0dbd6de",
        ],
    )
    def test_valid(self, account_id):
        assert is_valid_account_id(account_id)

    @pytest.mark.parametrize(
        "account_id",
        ["", "x", "-bot.testnet", "bot-.testnet", "bot.testnet.", "BOT.testnet", "a" * 65],
    )
    def test_invalid(self, account_id):
        assert not is_valid_account_id(account_id)
