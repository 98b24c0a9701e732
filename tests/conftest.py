"""Shared fixtures: an in-memory Firestore so tests run without credentials."""
from __future__ import annotations

import copy
import os
import uuid
from datetime import datetime, timedelta, timezone

# Set dummy env vars BEFORE any storefront imports
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from firebase_admin import firestore


# ---------- Fake Firestore ----------

class FakeSnapshot:
    def __init__(self, ref, data):
        self.reference = ref
        self.id = ref.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocRef:
    def __init__(self, db, collection, doc_id):
        self._db = db
        self.collection_name = collection
        self.id = doc_id

    def _docs(self):
        return self._db.data.setdefault(self.collection_name, {})

    def get(self, transaction=None, **kw):
        return FakeSnapshot(self, copy.deepcopy(self._docs().get(self.id)))

    def set(self, data, merge=False):
        self._db.check_write(self.collection_name)
        docs = self._docs()
        if merge and self.id in docs:
            docs[self.id].update(copy.deepcopy(data))
        else:
            docs[self.id] = copy.deepcopy(data)

    def update(self, data):
        self._db.check_write(self.collection_name)
        docs = self._docs()
        if self.id not in docs:
            raise KeyError(f"No document to update: {self.collection_name}/{self.id}")
        docs[self.id].update(copy.deepcopy(data))

    def delete(self):
        self._docs().pop(self.id, None)


_OPS = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a is not None and a < b,
    "<=": lambda a, b: a is not None and a <= b,
    ">": lambda a, b: a is not None and a > b,
    ">=": lambda a, b: a is not None and a >= b,
    "in": lambda a, b: a in b,
    "array_contains": lambda a, b: b in (a or []),
}


class FakeQuery:
    def __init__(self, db, name, filters=(), orders=(), limit_to=None):
        self._db = db
        self._name = name
        self._filters = tuple(filters)
        self._orders = tuple(orders)
        self._limit = limit_to

    def document(self, doc_id=None):
        return FakeDocRef(self._db, self._name, doc_id or uuid.uuid4().hex[:20])

    def where(self, field, op, value):
        return FakeQuery(self._db, self._name, self._filters + ((field, op, value),), self._orders, self._limit)

    def order_by(self, field, direction="ASCENDING"):
        return FakeQuery(self._db, self._name, self._filters, self._orders + ((field, direction),), self._limit)

    def limit(self, n):
        return FakeQuery(self._db, self._name, self._filters, self._orders, n)

    def stream(self):
        docs = self._db.data.get(self._name, {})
        rows = [
            (doc_id, data) for doc_id, data in docs.items()
            if all(_OPS[op](data.get(field), value) for field, op, value in self._filters)
        ]
        for field, direction in reversed(self._orders):
            rows.sort(key=lambda r: (r[1].get(field) is None, r[1].get(field)),
                      reverse=direction == firestore.Query.DESCENDING)
        if self._limit is not None:
            rows = rows[: self._limit]
        for doc_id, data in rows:
            yield FakeSnapshot(FakeDocRef(self._db, self._name, doc_id), copy.deepcopy(data))


class FakeTransaction:
    """Buffers writes; they land only when the transactional function returns."""

    def __init__(self, db):
        self._db = db
        self._writes = []

    def set(self, ref, data, merge=False):
        self._db.check_write(ref.collection_name)
        self._writes.append(lambda: ref.set(data, merge=merge))

    def update(self, ref, data):
        self._db.check_write(ref.collection_name)
        self._writes.append(lambda: ref.update(data))

    def delete(self, ref):
        self._writes.append(ref.delete)

    def commit(self):
        for write in self._writes:
            write()
        self._writes = []


class FakeFirestore:
    def __init__(self):
        self.data = {}
        self.failing_collections = set()

    def collection(self, name):
        return FakeQuery(self, name)

    def transaction(self):
        return FakeTransaction(self)

    def check_write(self, collection):
        if collection in self.failing_collections:
            raise RuntimeError(f"write to {collection} failed")

    # convenience for tests
    def put(self, collection, doc_id, data):
        self.data.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    def doc(self, collection, doc_id):
        return copy.deepcopy(self.data.get(collection, {}).get(doc_id))

    def all(self, collection):
        return copy.deepcopy(self.data.get(collection, {}))


def fake_transactional(fn):
    def run(transaction, *args, **kwargs):
        result = fn(transaction, *args, **kwargs)
        transaction.commit()
        return result
    return run


# ---------- Fixtures ----------

SERVICE_MODULES = (
    "storefront.services.products",
    "storefront.services.users",
    "storefront.services.cart",
    "storefront.services.promotions",
    "storefront.services.orders",
    "storefront.services.refunds",
)


@pytest.fixture(autouse=True)
def db(monkeypatch):
    """Point every service at a fresh in-memory Firestore."""
    fake = FakeFirestore()
    for module in SERVICE_MODULES:
        monkeypatch.setattr(f"{module}.ensure_firestore", lambda: fake)
    monkeypatch.setattr(firestore, "transactional", fake_transactional)
    return fake


@pytest.fixture()
def client():
    """FastAPI TestClient (sync)."""
    from fastapi.testclient import TestClient
    from storefront.main import app
    return TestClient(app)


@pytest.fixture()
def now():
    return datetime.now(timezone.utc)


@pytest.fixture()
def products(db):
    db.put("products", "p1", {"name": "Desk Lamp", "price": 10.00, "stock": 20, "isActive": True,
                              "category": "lighting"})
    db.put("products", "p2", {"name": "Light Bulb", "price": 5.00, "stock": 100, "isActive": True,
                              "category": "lighting"})
    return ["p1", "p2"]


@pytest.fixture()
def user(db):
    db.put("users", "u1", {"name": "Nimal", "email": "nimal@example.com", "cart": []})
    return "u1"


@pytest.fixture()
def user_headers(user):
    from storefront.security import UserCaller, create_token
    return {"Authorization": f"Bearer {create_token(UserCaller(id=user))}"}


@pytest.fixture()
def admin_headers(db):
    from storefront.security import AdminCaller, create_token
    db.put("admins", "a1", {"name": "Ops", "email": "ops@example.com", "role": "admin"})
    return {"Authorization": f"Bearer {create_token(AdminCaller(id='a1'))}"}


@pytest.fixture()
def make_promotion(db, now):
    def _make(promo_id="promo1", **overrides):
        data = {
            "name": "Ten percent",
            "description": "10% off everything",
            "code": "SAVE10",
            "type": "percentage",
            "discountValue": 10,
            "maxDiscountAmount": None,
            "minimumOrderValue": 0,
            "maxUsageCount": None,
            "usageCount": 0,
            "maxUsagePerUser": 1,
            "startDate": now - timedelta(days=1),
            "endDate": now + timedelta(days=30),
            "isActive": True,
            "usedBy": [],
            "createdBy": "a1",
            "createdAt": now - timedelta(days=1),
        }
        data.update(overrides)
        db.put("promotions", promo_id, data)
        return promo_id
    return _make
