"""Tests for the feature gate."""

import asyncio

import pytest

from employdex.core.exceptions import FeatureDisabledError
from employdex.models import FeatureToggle
from employdex.services.audit_service import Auditor, RecordingAuditSink
from employdex.services.feature_service import RequireFeature, feature_service, is_enabled


def test_absent_toggle_is_disabled(db_session):
    assert is_enabled(db_session, "payments") is False


def test_seeded_payment_toggle_starts_disabled(db_session):
    assert is_enabled(db_session, "payment_integration") is False


def test_switch_turns_toggle_on_and_emits_event(db_session):
    sink = RecordingAuditSink()
    feature_service.switch(db_session, Auditor(sink), "payment_integration", True)
    assert is_enabled(db_session, "payment_integration") is True
    assert sink.event_names() == ["feature-toggle:payment_integration"]
    assert sink.events[0][1]["is_enabled"] is True


def test_require_feature_raises_when_off(db_session):
    gate = RequireFeature("payment_integration")
    with pytest.raises(FeatureDisabledError) as exc:
        asyncio.run(gate(db_session))
    assert exc.value.status_code == 403
    assert exc.value.to_body() == {"error": "Feature 'payment_integration' is disabled"}


def test_require_feature_passes_when_on(db_session):
    db_session.add(FeatureToggle(feature_name="reports", is_enabled=True))
    db_session.commit()
    assert asyncio.run(RequireFeature("reports")(db_session)) is None
