"""
Shared test fixtures.

Settings need MONGODB_URI / MONGODB_DATABASE at import time, so they are set
before anything under src is imported. MongoDB is replaced by a small
in-memory async double that implements the subset of the motor API the
pipeline uses.
"""
import os

os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGODB_DATABASE", "civic_watchdog_test")
os.environ.setdefault("OPENAI_API_KEY", "")

import copy
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError, WriteError

from src.ingestion.retry import RetryPolicy
from src.models.source import EntityType, GovernmentLevel, Source


# ============================================================================
# In-memory MongoDB double
# ============================================================================

_MISSING = object()


def _get_path(doc: dict, path: str) -> Any:
    value: Any = doc
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _set_path(doc: dict, path: str, value: Any):
    parts = path.split(".")
    target = doc
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _is_operator_dict(value: Any) -> bool:
    return isinstance(value, dict) and any(key.startswith("$") for key in value)


def _matches(doc: dict, query: Optional[dict]) -> bool:
    for key, condition in (query or {}).items():
        found = _get_path(doc, key)
        value = None if found is _MISSING else found

        if _is_operator_dict(condition):
            for op, arg in condition.items():
                if op == "$exists":
                    if bool(arg) != (found is not _MISSING):
                        return False
                elif op == "$ne":
                    if value == arg:
                        return False
                elif op == "$in":
                    if value not in arg:
                        return False
                elif op == "$gte":
                    if value is None or value < arg:
                        return False
                elif op == "$lt":
                    if value is None or value >= arg:
                        return False
                else:
                    raise NotImplementedError(f"Fake MongoDB does not support {op}")
        elif isinstance(value, list) and not isinstance(condition, list):
            if condition not in value:
                return False
        elif value != condition:
            return False
    return True


def _sort_key(field: str):
    def key(doc):
        value = _get_path(doc, field)
        value = None if value is _MISSING else value
        return (value is None, value)
    return key


class FakeUpdateResult:
    def __init__(self, matched_count: int, modified_count: int, upserted_id=None):
        self.matched_count = matched_count
        self.modified_count = modified_count
        self.upserted_id = upserted_id


class FakeInsertResult:
    def __init__(self, inserted_id):
        self.inserted_id = inserted_id


class FakeCursor:
    """Supports sort/limit chaining, to_list and async iteration."""

    def __init__(self, docs: List[dict]):
        self._docs = docs

    def sort(self, key, direction: int = 1):
        if isinstance(key, list):
            key, direction = key[0]
        # None sorts last in both directions
        present = [d for d in self._docs if _get_path(d, key) not in (_MISSING, None)]
        absent = [d for d in self._docs if _get_path(d, key) in (_MISSING, None)]
        present.sort(key=_sort_key(key), reverse=direction == -1)
        self._docs = present + absent
        return self

    def limit(self, count: int):
        if count:
            self._docs = self._docs[:count]
        return self

    async def to_list(self, length: Optional[int] = None):
        return list(self._docs[:length] if length else self._docs)

    def __aiter__(self):
        self._iter = iter(self._docs)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    def __init__(self, name: str):
        self.name = name
        self.docs: List[dict] = []
        self.indexes: List[dict] = []
        self.fail_with: Optional[Exception] = None

    def _check_failure(self):
        if self.fail_with is not None:
            raise self.fail_with

    def _unique_conflict(self, doc: dict) -> bool:
        for index in self.indexes:
            if not index["unique"]:
                continue
            fields = [field for field, _ in index["keys"]]
            key = tuple(_get_path(doc, f) for f in fields)
            for other in self.docs:
                if other is not doc and tuple(_get_path(other, f) for f in fields) == key:
                    return True
        return False

    async def create_index(self, keys, unique: bool = False, name: Optional[str] = None):
        self._check_failure()
        self.indexes.append({"keys": list(keys), "unique": unique, "name": name})
        return name

    async def insert_one(self, document: dict):
        self._check_failure()
        doc = copy.deepcopy(document)
        doc.setdefault("_id", ObjectId())
        if self._unique_conflict(doc):
            raise DuplicateKeyError("E11000 duplicate key error")
        self.docs.append(doc)
        return FakeInsertResult(doc["_id"])

    async def find_one(self, query: Optional[dict] = None, projection: Optional[dict] = None):
        self._check_failure()
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query: Optional[dict] = None, projection: Optional[dict] = None) -> FakeCursor:
        self._check_failure()
        return FakeCursor([copy.deepcopy(d) for d in self.docs if _matches(d, query)])

    async def count_documents(self, query: dict) -> int:
        self._check_failure()
        return sum(1 for doc in self.docs if _matches(doc, query))

    async def update_one(self, query: dict, update: dict, upsert: bool = False):
        self._check_failure()
        set_fields = update.get("$set", {})
        on_insert = update.get("$setOnInsert", {})
        overlap = set(set_fields) & set(on_insert)
        if overlap:
            raise WriteError(f"Updating the path '{sorted(overlap)[0]}' would create a conflict")

        for doc in self.docs:
            if _matches(doc, query):
                before = copy.deepcopy(doc)
                for path, value in set_fields.items():
                    _set_path(doc, path, copy.deepcopy(value))
                return FakeUpdateResult(1, int(before != doc))

        if not upsert:
            return FakeUpdateResult(0, 0)

        doc: Dict[str, Any] = {}
        for key, value in query.items():
            if not _is_operator_dict(value):
                _set_path(doc, key, copy.deepcopy(value))
        for path, value in list(on_insert.items()) + list(set_fields.items()):
            _set_path(doc, path, copy.deepcopy(value))
        doc["_id"] = ObjectId()
        if self._unique_conflict(doc):
            raise DuplicateKeyError("E11000 duplicate key error")
        self.docs.append(doc)
        return FakeUpdateResult(0, 0, doc["_id"])

    def aggregate(self, pipeline: List[dict]) -> FakeCursor:
        self._check_failure()
        docs = [copy.deepcopy(d) for d in self.docs]
        for stage in pipeline:
            (op, arg), = stage.items()
            if op == "$match":
                docs = [d for d in docs if _matches(d, arg)]
            elif op == "$unwind":
                field = arg.lstrip("$")
                unwound = []
                for d in docs:
                    for item in d.get(field) or []:
                        copied = dict(d)
                        copied[field] = item
                        unwound.append(copied)
                docs = unwound
            elif op == "$group":
                docs = _group(docs, arg)
            elif op == "$sort":
                (field, direction), = arg.items()
                docs = FakeCursor(docs).sort(field, direction)._docs
            elif op == "$limit":
                docs = docs[:arg]
            else:
                raise NotImplementedError(f"Fake MongoDB does not support {op}")
        return FakeCursor(docs)


def _resolve(doc: dict, expression: Any) -> Any:
    if isinstance(expression, str) and expression.startswith("$"):
        value = _get_path(doc, expression[1:])
        return None if value is _MISSING else value
    return expression


def _group(docs: List[dict], arg: dict) -> List[dict]:
    groups: "OrderedDict[Any, List[dict]]" = OrderedDict()
    for doc in docs:
        groups.setdefault(_resolve(doc, arg["_id"]), []).append(doc)

    results = []
    for key, members in groups.items():
        row = {"_id": key}
        for name, accumulator in arg.items():
            if name == "_id":
                continue
            (op, expression), = accumulator.items()
            values = [_resolve(doc, expression) for doc in members]
            if op == "$sum":
                row[name] = sum(v for v in values if isinstance(v, (int, float)))
            elif op == "$avg":
                numbers = [v for v in values if isinstance(v, (int, float))]
                row[name] = sum(numbers) / len(numbers) if numbers else None
            elif op == "$first":
                row[name] = values[0] if values else None
            else:
                raise NotImplementedError(f"Fake MongoDB does not support {op}")
        results.append(row)
    return results


class FakeDatabase:
    """Dict- and attribute-style access to FakeCollections."""

    def __init__(self):
        self._collections: Dict[str, FakeCollection] = {}
        self.reachable = True

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]

    def __getattr__(self, name: str) -> FakeCollection:
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    async def command(self, name: str):
        if not self.reachable:
            raise ServerSelectionTimeoutError("No servers available")
        return {"ok": 1.0}


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def fake_db():
    """Empty in-memory database."""
    return FakeDatabase()


class SleepRecorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def fast_policy(sleep_recorder):
    """Three attempts with recorded (not real) backoff."""
    return RetryPolicy(max_attempts=3, base_delay_ms=100, max_delay_ms=1000, sleep=sleep_recorder)


class RouteTransport:
    """
    httpx.MockTransport over a url -> response table.

    Values are (status, body) tuples, or a list of them consumed in order
    (the last one repeats). Unknown URLs answer 404.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes: Dict[str, Any] = dict(routes or {})
        self.calls: List[str] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls.append(url)
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, Exception):
            raise route
        if isinstance(route, list):
            status, body = route.pop(0) if len(route) > 1 else route[0]
        else:
            status, body = route
        return httpx.Response(status, text=body)

    def count(self, url: str) -> int:
        return self.calls.count(url)


@pytest.fixture
def routes():
    return RouteTransport()


def make_source(
    name: str = "Test Legislature",
    base_url: str = "https://www.ola.org",
    level: GovernmentLevel = GovernmentLevel.PROVINCIAL,
    jurisdiction: str = "Ontario",
    endpoints: Optional[Dict[EntityType, str]] = None,
    rate_limit_per_minute: int = 60,
) -> Source:
    return Source(
        name=name,
        base_url=base_url,
        level=level,
        jurisdiction=jurisdiction,
        endpoints=endpoints if endpoints is not None else {EntityType.OFFICIALS: "/members"},
        rate_limit_per_minute=rate_limit_per_minute,
    )


@pytest.fixture
def ontario_source():
    return make_source()


MEMBERS_TABLE = """
<html><body>
<table>
  <tr><td>Jane Doe</td><td>Liberal</td><td>Test Riding</td></tr>
</table>
</body></html>
"""


@pytest.fixture
def members_html():
    return MEMBERS_TABLE
