"""
Shopify Order Lookup

REST Admin API client for order lookups. The store's offline access token
is injected at boot; no OAuth happens here.
"""

import time
from typing import Any, Callable

from pydantic import BaseModel, Field
import requests
import structlog

from support_agent.shared.config import normalize_store_url

log = structlog.get_logger()

API_VERSION = "2026-01"
HIGH_VALUE_THRESHOLD = 100.0
RATE_LIMIT_RETRY_SECONDS = 1.0

ORDER_FIELDS = (
    "id",
    "name",
    "financial_status",
    "fulfillment_status",
    "line_items",
    "fulfillments",
    "created_at",
    "updated_at",
    "total_price_set",
    "custom_attributes",
)

AUTH_FAILED_REASON = "Shopify API authentication failed. Escalate to owner."
MISSING_CONFIG_REASON = (
    "Shopify store URL or access token missing. The token must be injected at "
    "boot as SUPPORT_SHOPIFY_ACCESS_TOKEN."
)


class OrderLookupResult(BaseModel):
    """Outcome of an order lookup."""

    success: bool = Field(..., description="The API call itself succeeded")
    order: dict[str, Any] | None = Field(
        default=None,
        description="Chosen order; None means no match and the customer must clarify",
    )
    reason: str = Field(default="", description="Human-readable explanation")
    flags: list[str] = Field(default_factory=list, description="Derived order flags")
    escalation_needed: bool = Field(default=False)

    def to_context(self) -> str:
        """JSON block handed to the reply generator."""
        return self.model_dump_json(
            include={"success", "order", "reason", "flags"},
            indent=2,
        )


def build_orders_params(order_number: str | None, email: str | None) -> dict[str, str]:
    """Query parameters for ``orders.json``. An order number wins over an email."""
    params = {
        "status": "any",
        "limit": "1" if order_number else "5",
    }
    if order_number:
        name = order_number.strip().lstrip("#").strip()
        if name:
            params["name"] = f"#{name}"
    elif email:
        params["email"] = email.strip()
    params["fields"] = ",".join(ORDER_FIELDS)
    return params


def _is_final_sale(line_item: dict[str, Any]) -> bool:
    for attribute in line_item.get("custom_attributes") or []:
        if not isinstance(attribute, dict):
            continue
        value = str(attribute.get("value") or "").lower()
        if "final sale" in value or "no_refund" in value:
            return True
    return False


def _has_tracking(fulfillment: Any) -> bool:
    if not isinstance(fulfillment, dict):
        return False
    return bool(fulfillment.get("tracking_number") or fulfillment.get("tracking_numbers"))


def _order_total(order: dict[str, Any]) -> float:
    shop_money = ((order.get("total_price_set") or {}).get("shop_money") or {})
    try:
        return float(shop_money.get("amount") or 0)
    except (TypeError, ValueError):
        return 0.0


def build_order_flags(order: dict[str, Any]) -> list[str]:
    """Derive policy flags the reply generator relies on."""
    line_items = [item for item in order.get("line_items") or [] if isinstance(item, dict)]
    final_sale = any(_is_final_sale(item) for item in line_items)

    flags: list[str] = []
    if final_sale:
        flags.append("final_sale_item_found")
    if order.get("financial_status") == "paid" and not final_sale:
        flags.append("refund_eligible")
    if any(_has_tracking(f) for f in order.get("fulfillments") or []):
        flags.append("tracking_available")
    if _order_total(order) > HIGH_VALUE_THRESHOLD:
        flags.append("high_value")
    return flags


class ShopifyClient:
    """
    Order lookup over the Shopify REST Admin API.

    Args:
        session: HTTP session (injectable for tests)
        timeout: Per-request timeout in seconds
        sleep: Sleep function used before the single rate-limit retry
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._session = session or requests.Session()
        self._timeout = timeout
        self._sleep = sleep

    def _get(self, url: str, token: str, params: dict[str, str]) -> requests.Response:
        headers = {
            "X-Shopify-Access-Token": token,
            "Content-Type": "application/json",
        }
        response = self._session.get(url, headers=headers, params=params, timeout=self._timeout)
        if response.status_code == 429:
            log.warning("shopify_rate_limited", retry_in=RATE_LIMIT_RETRY_SECONDS)
            self._sleep(RATE_LIMIT_RETRY_SECONDS)
            response = self._session.get(url, headers=headers, params=params, timeout=self._timeout)
        return response

    def lookup_order(
        self,
        store_url: str,
        token: str,
        order_number: str | None,
        email: str | None,
    ) -> OrderLookupResult:
        """
        Find an order by number, falling back to the customer email.

        Never raises; every failure is reported in the result with
        ``escalation_needed=True``.
        """
        if not store_url or not store_url.strip() or not token or not token.strip():
            return OrderLookupResult(
                success=False,
                reason=MISSING_CONFIG_REASON,
                escalation_needed=True,
            )

        origin = normalize_store_url(store_url).rstrip("/")
        url = f"{origin}/admin/api/{API_VERSION}/orders.json"
        params = build_orders_params(
            (order_number or "").strip() or None,
            (email or "").strip() or None,
        )

        log.info(
            "shopify_lookup_start",
            store=origin,
            by_order_number="name" in params,
        )

        try:
            response = self._get(url, token, params)
        except requests.RequestException as e:
            log.error("shopify_request_failed", store=origin, error=str(e))
            return OrderLookupResult(
                success=False,
                reason=f"Shopify request failed: {e}",
                escalation_needed=True,
            )

        if response.status_code in (401, 403):
            log.warning("shopify_auth_failed", status=response.status_code)
            return OrderLookupResult(
                success=False,
                reason=AUTH_FAILED_REASON,
                escalation_needed=True,
            )

        if not response.ok:
            log.error("shopify_api_error", status=response.status_code)
            return OrderLookupResult(
                success=False,
                reason=f"Shopify API error {response.status_code}: {response.text[:500] or 'unknown'}",
                escalation_needed=True,
            )

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        orders = [o for o in (payload or {}).get("orders") or [] if isinstance(o, dict)]

        if not orders:
            log.info("shopify_order_not_found", store=origin)
            return OrderLookupResult(
                success=True,
                reason="Order not found.",
                flags=["clarification_needed"],
            )

        # Several matches: the most recent order is the one being asked about
        chosen = max(orders, key=lambda o: str(o.get("created_at") or ""))
        flags = build_order_flags(chosen)
        log.info(
            "shopify_order_found",
            order_name=chosen.get("name"),
            matches=len(orders),
            flags=flags,
        )
        return OrderLookupResult(
            success=True,
            order=chosen,
            reason="Order found.",
            flags=flags,
        )
