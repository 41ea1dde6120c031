import logging
from urllib.parse import parse_qs, urlsplit

import pytest

from storefront.services.payments import CallbackParams, FinalOutcome, ReturnCallbackHandler
from storefront.services.payments.callbacks import (
    ORDER_ID_ALIASES,
    CallbackSource,
    ProvisionalStatus,
    classify_status,
    extract_outcome,
)

CLIENT_URL = "http://localhost:3000"


class FakeReconciler:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def reconcile(self, order_id, client_url):
        self.calls.append((order_id, client_url))
        if self.error:
            raise self.error
        return FinalOutcome(redirect_target=f"{client_url}/thankyou?order_id={order_id}", verified=True, order_id=order_id)


def query_of(target):
    return {k: v[0] for k, v in parse_qs(urlsplit(target).query).items()}


@pytest.mark.parametrize("alias", ORDER_ID_ALIASES + ("payment_session_id", "paymentSessionId"))
def test_order_id_found_under_every_alias(alias):
    outcome = extract_outcome(CallbackParams(query={alias: " order_9 "}))
    assert outcome.extracted_order_id == "order_9"
    assert outcome.source is CallbackSource.query


def test_order_id_found_in_body():
    outcome = extract_outcome(CallbackParams(body={"orderId": "order_9", "txStatus": "SUCCESS"}))
    assert outcome.extracted_order_id == "order_9"
    assert outcome.provisional_status is ProvisionalStatus.SUCCESS
    assert outcome.source is CallbackSource.body


def test_query_checked_before_body():
    outcome = extract_outcome(CallbackParams(query={"order_id": "from_query"}, body={"order_id": "from_body"}))
    assert outcome.extracted_order_id == "from_query"


def test_merchant_order_id_preferred_over_gateway_id():
    outcome = extract_outcome(CallbackParams(query={"cf_order_id": "2149460581", "order_id": "order_9"}))
    assert outcome.extracted_order_id == "order_9"


def test_nested_json_body():
    body = {"data": {"order": {"order_id": "order_9"}, "payment": {"payment_status": "FAILED"}}}
    outcome = extract_outcome(CallbackParams(body=body))
    assert outcome.extracted_order_id == "order_9"
    assert outcome.provisional_status is ProvisionalStatus.FAILURE


def test_list_values_and_blanks():
    outcome = extract_outcome(CallbackParams(query={"order_id": "  ", "orderId": ["order_9", "other"]}))
    assert outcome.extracted_order_id == "order_9"


@pytest.mark.parametrize(
    "token, expected",
    [
        ("SUCCESS", ProvisionalStatus.SUCCESS),
        ("paid", ProvisionalStatus.SUCCESS),
        ("Completed", ProvisionalStatus.SUCCESS),
        ("FAILED", ProvisionalStatus.FAILURE),
        ("USER_DROPPED", ProvisionalStatus.FAILURE),
        ("cancelled", ProvisionalStatus.FAILURE),
        ("PENDING", ProvisionalStatus.UNKNOWN),
        ("", ProvisionalStatus.UNKNOWN),
        (None, ProvisionalStatus.UNKNOWN),
    ],
)
def test_classify_status(token, expected):
    assert classify_status(token) is expected


def test_order_id_always_goes_to_reconciler():
    reconciler = FakeReconciler()
    handler = ReturnCallbackHandler(reconciler)
    outcome = handler.handle(CallbackParams(query={"order_id": "order_9", "payment_status": "FAILED"}), CLIENT_URL)

    assert reconciler.calls == [("order_9", CLIENT_URL)]
    assert outcome.verified


def test_success_without_order_id_is_unverified():
    reconciler = FakeReconciler()
    outcome = ReturnCallbackHandler(reconciler).handle(
        CallbackParams(query={"payment_status": "SUCCESS"}), CLIENT_URL
    )

    assert reconciler.calls == []
    assert not outcome.verified
    assert outcome.redirect_target.startswith("http://localhost:3000/thankyou?")
    query = query_of(outcome.redirect_target)
    assert query["payment_status"] == "success"
    assert query["verified"] == "false"
    assert "order_id" not in query


@pytest.mark.parametrize(
    "params",
    [
        CallbackParams(),
        CallbackParams(query={"payment_status": "FAILED"}),
        CallbackParams(query={"status": "PENDING"}, body={"note": "x"}),
    ],
)
def test_no_order_id_without_success_is_missing_order_id(params):
    reconciler = FakeReconciler()
    outcome = ReturnCallbackHandler(reconciler).handle(params, CLIENT_URL)

    assert reconciler.calls == []
    assert outcome.redirect_target == "http://localhost:3000/cart?error=missing_order_id"


def test_unexpected_error_becomes_safe_redirect():
    handler = ReturnCallbackHandler(FakeReconciler(error=RuntimeError("database is down")))
    outcome = handler.handle(CallbackParams(query={"order_id": "order_9"}), CLIENT_URL)
    assert outcome.redirect_target == "http://localhost:3000/cart?error=payment_verification_failed"
    assert not outcome.verified


def test_broken_extractor_becomes_safe_redirect():
    def broken(params):
        raise KeyError("boom")

    handler = ReturnCallbackHandler(FakeReconciler(), order_id_extractors=[broken])
    outcome = handler.handle(CallbackParams(query={"order_id": "order_9"}), CLIENT_URL)
    assert query_of(outcome.redirect_target) == {"error": "payment_verification_failed"}


def test_custom_extractor_order():
    def from_ref(params):
        value = params.query.get("ref")
        return (value, CallbackSource.query) if value else None

    reconciler = FakeReconciler()
    ReturnCallbackHandler(reconciler, order_id_extractors=[from_ref]).handle(
        CallbackParams(query={"ref": "order_ref", "order_id": "ignored"}), CLIENT_URL
    )
    assert reconciler.calls == [("order_ref", CLIENT_URL)]


def test_raw_parameters_logged_before_decision(caplog):
    with caplog.at_level(logging.INFO):
        ReturnCallbackHandler(FakeReconciler()).handle(
            CallbackParams(query={"weird_key": "1"}, body={"other": "2"}), CLIENT_URL
        )
    received = [record for record in caplog.records if record.getMessage() == "Payment return received"]
    assert len(received) == 1
    assert received[0].query == {"weird_key": "1"}
    assert received[0].body == {"other": "2"}
    assert caplog.records.index(received[0]) == 0


def test_gateway_order_id_alone_still_verified():
    reconciler = FakeReconciler()
    ReturnCallbackHandler(reconciler).handle(CallbackParams(query={"cf_order_id": "order_9"}), CLIENT_URL)
    assert reconciler.calls == [("order_9", CLIENT_URL)]
