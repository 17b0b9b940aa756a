"""Tests for transaction context manager and action decorator."""

import pytest

from unistore import UniversalStore, action, bind, transaction


def _store():
    return UniversalStore({"auth": False, "token": None, "role": None})


class TestTransaction:
    def test_commits_once(self):
        s = _store()
        log = []
        bind(s, lambda st: (st["auth"], st["token"]), log.append)

        with transaction(s) as tx:
            tx["auth"] = True
            tx["token"] = "abc"
            assert s.get_field("auth") is False  # not yet committed

        assert log == [(True, "abc")]
        assert s.get_state() == {"auth": True, "token": "abc", "role": None}

    def test_reads_see_pending(self):
        s = _store()
        with transaction(s) as tx:
            tx.set("role", "master")
            assert tx["role"] == "master"
            assert tx["token"] is None

    def test_discarded_on_error(self):
        s = _store()
        log = []
        s.subscribe(1, "auth", lambda: log.append("auth"))

        with pytest.raises(RuntimeError):
            with transaction(s) as tx:
                tx["auth"] = True
                raise RuntimeError("oops")

        assert s.get_field("auth") is False
        assert log == []

    def test_empty_transaction_notifies_nobody(self):
        s = _store()
        log = []
        s.subscribe(1, "auth", lambda: log.append("auth"))
        with transaction(s):
            pass
        assert log == []

    def test_update_and_pending(self):
        s = _store()
        with transaction(s) as tx:
            tx.update({"auth": True, "role": "dispatcher"})
            assert tx.pending == {"auth": True, "role": "dispatcher"}
        assert s.get_field("role") == "dispatcher"


class TestAction:
    def test_batches_writes(self):
        s = _store()
        seen = []
        s.subscribe(1, "auth", lambda: seen.append(s.get_field("token")))

        @action(s)
        def sign_in(tx, token):
            tx["auth"] = True
            tx["token"] = token

        sign_in("abc")
        assert seen == ["abc"]

    def test_preserves_return_value(self):
        s = _store()

        @action(s)
        def compute(tx):
            return 42

        assert compute() == 42


class TestNested:
    def test_inner_joins_outer(self):
        s = _store()
        log = []
        bind(s, lambda st: (st["auth"], st["token"], st["role"]), log.append)

        with transaction(s) as outer:
            outer["auth"] = True
            with transaction(s) as inner:
                assert inner is outer
                inner["token"] = "abc"
            assert log == []  # inner exit does not commit
            outer["role"] = "master"

        assert log == [(True, "abc", "master")]

    def test_nested_actions_commit_once(self):
        s = _store()
        seen = []
        s.subscribe(1, "auth", lambda: seen.append(s.get_state()))

        @action(s)
        def set_token(tx, token):
            tx["token"] = token

        @action(s)
        def sign_in(tx, token):
            tx["auth"] = True
            set_token(token)
            tx["role"] = "master"

        sign_in("abc")
        assert seen == [{"auth": True, "token": "abc", "role": "master"}]

    def test_inner_error_rolls_back_inner_writes_only(self):
        s = _store()
        with transaction(s) as outer:
            outer["auth"] = True
            with pytest.raises(RuntimeError):
                with transaction(s) as inner:
                    inner["token"] = "leaked"
                    raise RuntimeError("inner failed")
            assert outer.pending == {"auth": True}
        assert s.get_state() == {"auth": True, "token": None, "role": None}

    def test_other_store_is_independent(self):
        s1, s2 = _store(), _store()
        with transaction(s1) as tx1:
            with transaction(s2) as tx2:
                assert tx2 is not tx1
                tx2["auth"] = True
            assert s2.get_field("auth") is True
            tx1["role"] = "x"
        assert s1.get_field("role") == "x"
