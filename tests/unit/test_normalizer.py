"""Unit tests for webhook models and event normalization."""

import pytest
from pydantic import ValidationError

from address_relay.webhook.models import ActivityCategory, NormalizedEvent, WebhookRequestBody
from address_relay.webhook.normalizer import normalize


class TestWebhookRequestBody:
    """Test decoding of webhook bodies."""

    def test_parse_full_body(self, webhook_body):
        """Test a complete body decodes with camelCase aliases."""
        body = WebhookRequestBody.model_validate(webhook_body)
        assert body.webhook_id == "wh_octjglnywaupz6th"
        assert body.created_at == "2022-02-28T17:48:53.306Z"
        assert body.event.network == "ETH_MAINNET"
        activity = body.event.activity[0]
        assert activity.category == ActivityCategory.EXTERNAL
        assert activity.from_address == "0xA"
        assert activity.to_address == "0xB"
        assert activity.raw_contract.raw_value is None

    def test_parse_raw_contract(self, webhook_body_factory, activity_factory):
        """Test contract details decode."""
        activity = activity_factory(category="token")
        activity["rawContract"] = {"rawValue": "0x0de0b6b3a7640000", "address": "0xC", "decimal": 18}
        activity["erc721TokenId"] = "0x1"
        activity["value"] = 1.5
        body = WebhookRequestBody.model_validate(webhook_body_factory([activity]))
        parsed = body.event.activity[0]
        assert parsed.raw_contract.raw_value == "0x0de0b6b3a7640000"
        assert parsed.raw_contract.decimal == 18
        assert parsed.erc721_token_id == "0x1"
        assert parsed.value == 1.5

    def test_unknown_category_rejected(self, webhook_body_factory, activity_factory):
        """Test categories outside token/internal/external are rejected."""
        body = webhook_body_factory([activity_factory(category="erc20")])
        with pytest.raises(ValidationError):
            WebhookRequestBody.model_validate(body)

    def test_missing_event_rejected(self, webhook_body):
        """Test a body without an event is rejected."""
        body = {k: v for k, v in webhook_body.items() if k != "event"}
        with pytest.raises(ValidationError):
            WebhookRequestBody.model_validate(body)


class TestNormalize:
    """Test normalize function."""

    def test_first_activity_only(self, webhook_body_factory, activity_factory):
        """Test only the first activity entry is projected."""
        body = WebhookRequestBody.model_validate(
            webhook_body_factory([
                activity_factory("internal", "0xA1", "0xA2"),
                activity_factory("token", "0xB1", "0xB2"),
                activity_factory("external", "0xC1", "0xC2"),
            ])
        )
        event = normalize(body)
        assert event == NormalizedEvent(
            event=ActivityCategory.INTERNAL, from_address="0xA1", to_address="0xA2"
        )

    def test_empty_activity_returns_none(self, webhook_body_factory):
        """Test a body without activity normalizes to None."""
        body = WebhookRequestBody.model_validate(webhook_body_factory([]))
        assert normalize(body) is None

    def test_payload_shape(self, webhook_body):
        """Test the published payload carries exactly event, fromAddress and toAddress."""
        event = normalize(WebhookRequestBody.model_validate(webhook_body))
        assert event.to_payload() == {"event": "external", "fromAddress": "0xA", "toAddress": "0xB"}

    def test_does_not_mutate_body(self, webhook_body_factory, activity_factory):
        """Test normalization leaves the body untouched."""
        body = WebhookRequestBody.model_validate(
            webhook_body_factory([activity_factory(), activity_factory("token")])
        )
        before = body.model_dump()
        normalize(body)
        assert body.model_dump() == before
