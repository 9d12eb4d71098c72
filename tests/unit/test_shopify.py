"""
Unit tests for the Shopify order lookup.

Tests cover:
- Query parameters (order number vs. email)
- Order flags
- Response handling: found, not found, auth failure, API error, network error
- Single retry after a rate limit
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from support_agent.shared.tools.shopify import (
    API_VERSION,
    AUTH_FAILED_REASON,
    MISSING_CONFIG_REASON,
    RATE_LIMIT_RETRY_SECONDS,
    ShopifyClient,
    build_order_flags,
    build_orders_params,
)


def _response(status: int, payload=None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.text = text
    response.json.return_value = payload
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def sleep():
    return MagicMock()


@pytest.fixture
def client(session, sleep):
    return ShopifyClient(session=session, timeout=5, sleep=sleep)


class TestBuildOrdersParams:
    """Tests for build_orders_params."""

    def test_order_number_wins(self):
        params = build_orders_params("#1001", "jane@customer.example")

        assert params["name"] == "#1001"
        assert params["limit"] == "1"
        assert params["status"] == "any"
        assert "email" not in params

    def test_email_fallback(self):
        params = build_orders_params(None, " jane@customer.example ")

        assert params["email"] == "jane@customer.example"
        assert params["limit"] == "5"
        assert "name" not in params


class TestBuildOrderFlags:
    """Tests for build_order_flags."""

    def test_paid_tracked_high_value(self):
        order = {
            "financial_status": "paid",
            "line_items": [{"title": "Shoes"}],
            "fulfillments": [{"tracking_number": "1Z999"}],
            "total_price_set": {"shop_money": {"amount": "149.00"}},
        }

        assert build_order_flags(order) == ["refund_eligible", "tracking_available", "high_value"]

    def test_final_sale_blocks_refund(self):
        order = {
            "financial_status": "paid",
            "line_items": [{"custom_attributes": [{"name": "note", "value": "Final Sale"}]}],
            "fulfillments": [{"tracking_numbers": []}],
            "total_price_set": {"shop_money": {"amount": "20.00"}},
        }

        assert build_order_flags(order) == ["final_sale_item_found"]

    def test_empty_order(self):
        assert build_order_flags({}) == []


class TestLookupOrder:
    """Tests for ShopifyClient.lookup_order."""

    def test_order_found(self, client, session):
        """The order and its flags are returned; the request is well formed."""
        session.get.return_value = _response(
            200, {"orders": [{"id": 1, "name": "#1001", "financial_status": "paid"}]}
        )

        result = client.lookup_order("shop.example.com/admin", "shpat", "1001", None)

        assert result.success is True
        assert result.order["name"] == "#1001"
        assert result.flags == ["refund_eligible"]
        assert result.escalation_needed is False
        url = session.get.call_args.args[0]
        assert url == f"https://shop.example.com/admin/api/{API_VERSION}/orders.json"
        assert session.get.call_args.kwargs["headers"]["X-Shopify-Access-Token"] == "shpat"

    def test_newest_of_several(self, client, session):
        session.get.return_value = _response(
            200,
            {
                "orders": [
                    {"id": 1, "created_at": "2025-01-01T00:00:00Z"},
                    {"id": 2, "created_at": "2025-02-01T00:00:00Z"},
                ]
            },
        )

        result = client.lookup_order("https://shop.example.com", "shpat", None, "jane@x")

        assert result.order["id"] == 2

    def test_not_found(self, client, session):
        """Zero matches succeed with no order and ask for clarification."""
        session.get.return_value = _response(200, {"orders": []})

        result = client.lookup_order("https://shop.example.com", "shpat", "9999", None)

        assert result.success is True
        assert result.order is None
        assert result.flags == ["clarification_needed"]

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_failure(self, client, session, status):
        session.get.return_value = _response(status)

        result = client.lookup_order("https://shop.example.com", "bad", "1001", None)

        assert result.success is False
        assert result.escalation_needed is True
        assert result.reason == AUTH_FAILED_REASON

    def test_api_error(self, client, session):
        session.get.return_value = _response(500, text="internal")

        result = client.lookup_order("https://shop.example.com", "shpat", "1001", None)

        assert result.escalation_needed is True
        assert result.reason == "Shopify API error 500: internal"

    def test_network_error(self, client, session):
        session.get.side_effect = requests.ConnectionError("dns")

        result = client.lookup_order("https://shop.example.com", "shpat", "1001", None)

        assert result.success is False
        assert result.reason.startswith("Shopify request failed")

    def test_rate_limit_retried_once(self, client, session, sleep):
        """A 429 sleeps and retries exactly once."""
        session.get.side_effect = [_response(429), _response(200, {"orders": []})]

        result = client.lookup_order("https://shop.example.com", "shpat", "1001", None)

        assert result.success is True
        assert session.get.call_count == 2
        sleep.assert_called_once_with(RATE_LIMIT_RETRY_SECONDS)

    @pytest.mark.parametrize("store_url,token", [("", "shpat"), ("https://shop.example.com", " ")])
    def test_missing_config(self, client, session, store_url, token):
        result = client.lookup_order(store_url, token, "1001", None)

        assert result.reason == MISSING_CONFIG_REASON
        assert result.escalation_needed is True
        session.get.assert_not_called()

    def test_context_excludes_escalation_flag(self, client, session):
        session.get.return_value = _response(200, {"orders": [{"id": 1}]})

        context = json.loads(
            client.lookup_order("https://shop.example.com", "shpat", "1", None).to_context()
        )

        assert context["order"] == {"id": 1}
        assert "escalation_needed" not in context
