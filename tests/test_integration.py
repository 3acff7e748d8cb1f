"""End-to-end checks against a live server.

Set ``REQL_TEST_ADDRESS`` (``host[:port]``) to run them. A scratch database
is created and dropped around the module.
"""

import os
import uuid

import pytest

import reql as r
from reql.errors import NoSuchRowError, RuntimeQueryError

ADDRESS = os.getenv("REQL_TEST_ADDRESS", "")

pytestmark = pytest.mark.skipif(not ADDRESS, reason="REQL_TEST_ADDRESS is not set")


@pytest.fixture(scope="module")
def session():
    database = f"reql_test_{uuid.uuid4().hex[:8]}"
    session = r.connect(ADDRESS, timeout=10)
    r.db_create(database).run(session).exec_()
    session.use(database)
    r.table_create("t").run(session).exec_()
    r.table("t").insert([{"id": i, "num": 20 - i} for i in range(10)]).run(session).exec_()
    yield session
    r.db_drop(database).run(session).exec_()
    session.close()


def test_add(session) -> None:
    assert r.expr(1).add(2).run(session).one() == 3


def test_distinct(session) -> None:
    assert r.expr([1, 1, 2, 3, 3]).distinct().run(session).one() == [1, 2, 3]


def test_filter_count(session) -> None:
    assert r.table("t").filter({"num": 16}).count().run(session).one() == 1


def test_order_by_asc_matches_plain_attribute(session) -> None:
    by_asc = r.table("t").order_by(r.asc("num")).run(session).all()
    by_name = r.table("t").order_by("num").run(session).all()
    assert [row["num"] for row in by_asc] == list(range(11, 21))
    assert by_asc == by_name


def test_merge(session) -> None:
    assert r.expr({"a": 1}).merge({"b": 2}).run(session).one() == {"a": 1, "b": 2}


def test_missing_row(session) -> None:
    with pytest.raises(NoSuchRowError):
        r.table("t").get(999).run(session).one()


def test_lambda_filter(session) -> None:
    rows = r.table("t").filter(lambda doc: doc["num"].gt(17)).run(session).all()
    assert sorted(row["id"] for row in rows) == [0, 1, 2]


def test_write_response(session) -> None:
    result = r.write_response(r.table("t").get(0).update({"tag": "x"}).run(session).one())
    assert result["replaced"] == 1


def test_runtime_error_reports_backtrace(session) -> None:
    cursor = r.expr(1).add("a").run(session)
    assert isinstance(cursor.err(), RuntimeQueryError)
