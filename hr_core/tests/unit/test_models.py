"""Tests for viewer resolution and Stripe event parsing."""

from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace

import pytest
from hr_core.models.billing import BillingEventType, SubscriptionEvent
from hr_core.models.identity import Admin, Employee, ProfileRole, resolve_viewer
from pydantic import ValidationError


def _user(role: str = "employee") -> SimpleNamespace:
    return SimpleNamespace(id="u1", role=role)


def _profile(role: str | None, company_id: str | None) -> SimpleNamespace:
    return SimpleNamespace(role=role, company_id=company_id)


class TestResolveViewer:
    def test_profile_role_wins(self) -> None:
        viewer = resolve_viewer(_user("employee"), _profile("business_admin", "c1"))  # type: ignore[arg-type]
        assert viewer == Admin(company_id="c1", user_id="u1")
        assert viewer.role is ProfileRole.BUSINESS_ADMIN

    def test_falls_back_to_user_role(self) -> None:
        viewer = resolve_viewer(_user("business_admin"), _profile(None, "c1"))  # type: ignore[arg-type]
        assert isinstance(viewer, Admin)

    def test_employee(self) -> None:
        viewer = resolve_viewer(_user(), _profile("employee", "c1"))  # type: ignore[arg-type]
        assert viewer == Employee(company_id="c1", user_id="u1")

    def test_owned_company_fills_missing_scope(self) -> None:
        company = SimpleNamespace(id="c9")
        viewer = resolve_viewer(_user("business_admin"), None, company)  # type: ignore[arg-type]
        assert viewer == Admin(company_id="c9", user_id="u1")

    def test_no_company_scope(self) -> None:
        assert resolve_viewer(_user(), _profile("employee", None)) is None  # type: ignore[arg-type]
        assert resolve_viewer(_user(), None) is None  # type: ignore[arg-type]


class TestSubscriptionEvent:
    def test_from_payload(self) -> None:
        event = SubscriptionEvent.from_payload(
            {
                "id": "evt_123",
                "type": "invoice.payment_failed",
                "created": 1772409600,
                "data": {"object": {"metadata": {"company_id": "c1"}}},
            }
        )
        assert event.id == "evt_123"
        assert event.known_type is BillingEventType.INVOICE_PAYMENT_FAILED
        assert event.created == datetime.fromtimestamp(1772409600, tz=UTC)
        assert event.data_object == {"metadata": {"company_id": "c1"}}

    def test_unsupported_type_is_kept(self) -> None:
        event = SubscriptionEvent.from_payload({"type": "charge.refunded"})
        assert event.type == "charge.refunded"
        assert event.known_type is None
        assert event.data_object == {}
        assert event.created is None

    def test_missing_type_is_invalid(self) -> None:
        with pytest.raises(ValidationError):
            SubscriptionEvent.from_payload({"id": "evt_1", "data": {"object": {}}})

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "invoice.payment_failed", "data": "oops"},
            {"type": "invoice.payment_failed", "data": {"object": ["oops"]}},
            {"type": "invoice.payment_failed", "created": 1e300},
            {"type": "invoice.payment_failed", "created": True},
        ],
    )
    def test_malformed_payload_raises_value_error(self, payload: dict) -> None:
        with pytest.raises(ValueError):
            SubscriptionEvent.from_payload(payload)
