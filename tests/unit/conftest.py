"""Shared pytest configuration for unit tests.

Firestore is replaced by an in-memory double that implements the part of
the client API the models use; it is patched in place of
``firebase_admin.firestore.client`` for every test. Outgoing email is
replaced by a Mock so nothing leaves the process.
"""
import copy
import itertools
import uuid
from datetime import datetime, timezone
from unittest.mock import Mock, patch

import bcrypt
import pytest
from google.api_core.exceptions import NotFound as FirestoreNotFound

from orgtasks.app import create_app
from orgtasks.models.organization_model import OrganizationModel
from orgtasks.models.user_model import UserModel
from orgtasks.services.auth_service import AuthService

TEST_JWT_SECRET = "unit-test-secret-0123456789abcdef0123456789"
TEST_PASSWORD = "password123"
TEST_PASSWORD_HASH = bcrypt.hashpw(TEST_PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")

# A fixed "now" for engine tests
NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


# -------- In-memory Firestore --------

_MISSING = object()


def _matches(data, field_path, op, value):
    current = data.get(field_path, _MISSING)
    if current is _MISSING:
        return False
    try:
        if op == "==":
            return current == value
        if op == "!=":
            return current != value
        if op == "<":
            return current is not None and current < value
        if op == "<=":
            return current is not None and current <= value
        if op == ">":
            return current is not None and current > value
        if op == ">=":
            return current is not None and current >= value
        if op == "in":
            return current in value
        if op == "not-in":
            return current not in value
        if op == "array_contains":
            return isinstance(current, list) and value in current
        if op == "array_contains_any":
            return isinstance(current, list) and any(v in current for v in value)
    except TypeError:
        return False
    raise ValueError(f"Unsupported operator: {op}")


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, collection, doc_id):
        self._collection = collection
        self.id = doc_id

    @property
    def _docs(self):
        return self._collection._docs

    def get(self):
        return FakeSnapshot(self, self._docs.get(self.id))

    def set(self, data, merge=False):
        if merge and self.id in self._docs:
            self._docs[self.id].update(copy.deepcopy(data))
        else:
            self._docs[self.id] = copy.deepcopy(data)

    def update(self, data):
        if self.id not in self._docs:
            raise FirestoreNotFound(f"No document to update: {self.id}")
        self._docs[self.id].update(copy.deepcopy(data))

    def delete(self):
        self._docs.pop(self.id, None)


class FakeQuery:
    def __init__(self, collection, filters=(), limit=None):
        self._collection = collection
        self._filters = tuple(filters)
        self._limit = limit

    def where(self, field_path=None, op_string=None, value=None, *, filter=None):
        if filter is not None:
            field_path = filter.field_path
            op_string = getattr(filter, "op_string", None) or getattr(filter, "op", None)
            value = filter.value
        return FakeQuery(self._collection, self._filters + ((field_path, op_string, value),), self._limit)

    def limit(self, count):
        return FakeQuery(self._collection, self._filters, count)

    def stream(self):
        results = []
        for doc_id, data in list(self._collection._docs.items()):
            if all(_matches(data, *f) for f in self._filters):
                results.append(FakeSnapshot(FakeDocumentRef(self._collection, doc_id), data))
        if self._limit is not None:
            results = results[:self._limit]
        return iter(results)

    def get(self):
        return list(self.stream())


class FakeCollection(FakeQuery):
    def __init__(self, name):
        self.name = name
        self._docs = {}
        super().__init__(self)

    def document(self, doc_id=None):
        return FakeDocumentRef(self, doc_id or uuid.uuid4().hex)


class FakeFirestore:
    """Just enough of google.cloud.firestore.Client for the models"""

    def __init__(self):
        self._collections = {}

    def collection(self, name):
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]

    def docs(self, name):
        """Raw stored documents of a collection, keyed by id"""
        return self.collection(name)._docs


# -------- Fixtures --------

@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture(autouse=True)
def firestore_client(fake_db):
    with patch("firebase_admin.firestore.client", return_value=fake_db) as client:
        yield client


@pytest.fixture(autouse=True)
def sent_emails():
    """Mock for the email sender; every call reports success unless changed"""
    sender = Mock(return_value=True)
    with patch("orgtasks.services.notification_service.send_email_util", sender):
        yield sender


@pytest.fixture
def app():
    return create_app({
        "TESTING": True,
        "JWT_SECRET": TEST_JWT_SECRET,
        "BCRYPT_ROUNDS": 4,
        "FRONTEND_URL": "http://app.test",
    })


@pytest.fixture
def client(app):
    return app.test_client()


_counter = itertools.count()


def make_user(db, organization_id=None, role="member", first_name="Test", email=None, **extra):
    user = UserModel(db).create_user({
        "email": email or f"user{next(_counter)}@example.com",
        "password_hash": TEST_PASSWORD_HASH,
        "first_name": first_name,
        "last_name": "User",
        "role": role,
        "organization_id": organization_id,
    })
    if extra:
        user = UserModel(db).update_user(user["user_id"], extra)
    return user


@pytest.fixture
def org(fake_db):
    """Acme with two custom categories"""
    return OrganizationModel(fake_db).create_organization(
        "Acme", "acme", settings={"task_categories": ["Dev", "Design"]}
    )


@pytest.fixture
def other_org(fake_db):
    return OrganizationModel(fake_db).create_organization("Globex", "globex")


@pytest.fixture
def admin(fake_db, org):
    return make_user(fake_db, org["organization_id"], "admin", "Ada", email="admin@acme.com")


@pytest.fixture
def manager(fake_db, org):
    return make_user(fake_db, org["organization_id"], "manager", "Max", email="manager@acme.com")


@pytest.fixture
def alice(fake_db, org):
    return make_user(fake_db, org["organization_id"], "member", "Alice", email="alice@acme.com")


@pytest.fixture
def bob(fake_db, org):
    return make_user(fake_db, org["organization_id"], "member", "Bob", email="bob@acme.com")


@pytest.fixture
def outsider(fake_db, other_org):
    return make_user(fake_db, other_org["organization_id"], "member", "Olga", email="olga@globex.com")


@pytest.fixture
def auth_headers(fake_db):
    """Build bearer headers for a user record"""
    auth = AuthService(fake_db, jwt_secret=TEST_JWT_SECRET, bcrypt_rounds=4)

    def _headers(user):
        return {"Authorization": f"Bearer {auth.issue_token(user)}"}

    return _headers
