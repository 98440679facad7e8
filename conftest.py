import json

import pytest
import requests

from commission_grid import GridState, Product


class FakeClock:
    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeClient:
    """Records calls made by the grid helpers; set `fail` to make every call raise it."""

    def __init__(self, products=None, bulk_response=None):
        self.products = products or []
        self.bulk_response = bulk_response
        self.fail = None
        self.calls = []

    def _check(self):
        if self.fail is not None:
            raise self.fail

    def list_products(self):
        self.calls.append(("list_products",))
        self._check()
        return list(self.products)

    def update_commission(self, product_id, percent):
        self.calls.append(("update_commission", product_id, percent))
        self._check()

    def update_commission_bulk(self, product_ids, percent):
        self.calls.append(("update_commission_bulk", list(product_ids), percent))
        self._check()
        return list(self.bulk_response or [])


class FakeSession:
    """Stand-in for requests.Session returning canned responses."""

    def __init__(self):
        self.requests = []
        self.responses = []

    def queue(self, status_code=200, body=None, raw=None):
        response = requests.Response()
        response.status_code = status_code
        if raw is not None:
            response._content = raw
        elif body is not None:
            response._content = json.dumps(body).encode()
        else:
            response._content = b""
        self.responses.append(response)

    def queue_error(self, error: Exception):
        self.responses.append(error)

    def request(self, method, url, json=None, timeout=None):
        self.requests.append({"method": method, "url": url, "json": json, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        response.url = url
        return response


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def products():
    return [
        Product(id="1", name="Apple Watch", category="Electronics", price=399.0, commission_percent=5),
        Product(id="2", name="Banana Bread", category="Food", price=6.5),
        Product(id="3", name="Cherry Phone", category="Electronics", price=899.0, commission_percent=10),
        Product(id="4", name="apple pie", category="Food", price=12.0),
    ]


@pytest.fixture
def grid(products):
    return GridState(products=list(products), page_size=10)


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def fake_client(products):
    return FakeClient(products=products)
