# Overview: Pytest coverage for PortalClient error mapping, using httpx.MockTransport.

import json

import httpx
import pytest

from portal.client import (
    OrderSubmissionError,
    PortalClient,
    PortalClientError,
    SubmissionOutcomeUnknown,
)


BASE_URL = "http://portal.test"


def _client(handler) -> PortalClient:
    return PortalClient(BASE_URL, submit_timeout=1, read_timeout=1, transport=httpx.MockTransport(handler))


def _raise(exc_type):
    def handler(request):
        raise exc_type("boom", request=request)
    return handler


class TestSubmitOrder:
    def test_success(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.read())
            return httpx.Response(201, json={"order": {"id": 7}, "promotion": {}, "apron_entitlement": None})

        with _client(handler) as client:
            result = client.submit_order(1, {3: 2}, "Seoul")

        assert result["order"]["id"] == 7
        assert seen["body"]["cart"] == [{"product_id": 3, "quantity": 2}]

    def test_rejection_is_definite_failure(self):
        handler = lambda request: httpx.Response(400, json={"error": "cart must contain at least one product"})
        with _client(handler) as client:
            with pytest.raises(OrderSubmissionError) as exc_info:
                client.submit_order(1, {}, "Seoul")
        assert exc_info.value.status_code == 400
        assert "at least one product" in str(exc_info.value)

    def test_failed_order_write_is_definite_failure(self):
        handler = lambda request: httpx.Response(
            500, json={"error": "Order could not be saved", "order_saved": False},
        )
        with _client(handler) as client:
            with pytest.raises(OrderSubmissionError) as exc_info:
                client.submit_order(1, {3: 1}, "Seoul")
        assert exc_info.value.status_code == 500

    @pytest.mark.parametrize("response", [
        httpx.Response(500, json={"error": "Internal server error"}),
        httpx.Response(503, text="Service Unavailable"),
    ])
    def test_other_server_error_is_ambiguous(self, response):
        with _client(lambda request: response) as client:
            with pytest.raises(SubmissionOutcomeUnknown) as exc_info:
                client.submit_order(1, {3: 1}, "Seoul")
        assert exc_info.value.status_code == response.status_code

    def test_read_timeout_is_ambiguous(self):
        with _client(_raise(httpx.ReadTimeout)) as client:
            with pytest.raises(SubmissionOutcomeUnknown):
                client.submit_order(1, {3: 1}, "Seoul")

    def test_dropped_connection_is_ambiguous(self):
        with _client(_raise(httpx.RemoteProtocolError)) as client:
            with pytest.raises(SubmissionOutcomeUnknown):
                client.submit_order(1, {3: 1}, "Seoul")

    @pytest.mark.parametrize("exc_type", [httpx.ConnectError, httpx.ConnectTimeout])
    def test_unreachable_is_definite_failure(self, exc_type):
        with _client(_raise(exc_type)) as client:
            with pytest.raises(OrderSubmissionError):
                client.submit_order(1, {3: 1}, "Seoul")

    @pytest.mark.parametrize("status", [502, 504])
    def test_gateway_failure_is_ambiguous(self, status):
        handler = lambda request: httpx.Response(status, text="Bad Gateway")
        with _client(handler) as client:
            with pytest.raises(SubmissionOutcomeUnknown) as exc_info:
                client.submit_order(1, {3: 1}, "Seoul")
        assert exc_info.value.status_code == status

    def test_ambiguous_is_not_a_submission_error(self):
        assert not issubclass(SubmissionOutcomeUnknown, OrderSubmissionError)


class TestReads:
    def test_list_products(self):
        handler = lambda request: httpx.Response(200, json={"items": [{"id": 1}], "count": 1})
        with _client(handler) as client:
            assert client.list_products() == [{"id": 1}]

    def test_quote(self):
        def handler(request):
            assert request.url.path == "/api/orders/quote"
            return httpx.Response(200, json={"promotion": {"granted_free_boxes": 1}})

        with _client(handler) as client:
            assert client.quote("1234567890", {1: 3})["granted_free_boxes"] == 1

    def test_missing_order(self):
        handler = lambda request: httpx.Response(404, json={"error": "Order not found"})
        with _client(handler) as client:
            with pytest.raises(PortalClientError) as exc_info:
                client.get_order(99)
        assert exc_info.value.status_code == 404

    def test_list_orders(self):
        def handler(request):
            assert request.url.path == "/api/businesses/7/orders"
            return httpx.Response(200, json={"items": [{"id": 3}, {"id": 2}], "count": 2})

        with _client(handler) as client:
            assert [o["id"] for o in client.list_orders(7)] == [3, 2]
