"""
Tests for webcase.security and webcase.sessions.
"""

from __future__ import annotations

import pytest

from blog_app import User
from webcase.security import (
    SecurityToken,
    UserInterface,
    basic_auth_header,
    parse_basic_auth,
    security_key,
)
from webcase.sessions import MemorySessionStore, Session


# ============================================================================
# 1. Tokens & credentials
# ============================================================================


class TestSecurityToken:

    def test_for_user(self):
        user = User(id=4, username="alice", password="pw", role_names="ROLE_USER,ROLE_ADMIN")
        token = SecurityToken.for_user(user, "main")
        assert token == SecurityToken("alice", "main", ["ROLE_USER", "ROLE_ADMIN"], 4)
        assert token.has_role("ROLE_ADMIN")
        assert not token.has_role("ROLE_ROOT")

    def test_password_is_not_serialized(self):
        user = User(username="alice", password="s3cret")
        assert "s3cret" not in SecurityToken.for_user(user, "main").dumps()

    def test_loads_dumps(self):
        token = SecurityToken("bob", "api", ["ROLE_API"], 9)
        assert SecurityToken.loads(token.dumps()) == token

    def test_user_without_roles(self):
        class Plain:
            username = "svc"
            password = "pw"

        assert isinstance(Plain(), UserInterface)
        token = SecurityToken.for_user(Plain(), "main")
        assert token.roles == []
        assert token.user_id is None

    def test_security_key(self):
        assert security_key("main") == "_security_main"


class TestBasicAuth:

    def test_header(self):
        assert basic_auth_header("alice", "wonderland") == "Basic YWxpY2U6d29uZGVybGFuZA=="

    def test_parse(self):
        assert parse_basic_auth(basic_auth_header("a", "b:c")) == ("a", "b:c")

    @pytest.mark.parametrize("header", [None, "", "Bearer abc", "Basic !!!", "Basic bm9jb2xvbg=="])
    def test_parse_rejects(self, header):
        assert parse_basic_auth(header) is None


# ============================================================================
# 2. Sessions
# ============================================================================


class TestSessions:

    def test_start_assigns_id(self, session_store):
        session = session_store.start()
        assert session.is_started
        assert session.id.startswith("sess_")
        assert session.name == "SESSID"

    def test_start_is_idempotent(self, session_store):
        session = session_store.start()
        assert session.start().id == session.id

    def test_unsaved_changes_are_invisible(self, session_store):
        session = session_store.start()
        session.set("k", "v")
        assert session_store.load(session.id) is None

    def test_save_and_load(self, session_store):
        session = session_store.start()
        session.set("k", "v")
        session.save()
        loaded = session_store.load(session.id)
        assert loaded.get("k") == "v"
        assert "k" in loaded
        assert len(session_store) == 1

    def test_loaded_copy_is_detached(self, session_store):
        session = session_store.start()
        session.save()
        loaded = session_store.load(session.id)
        loaded.set("k", "changed")
        assert session_store.load(session.id).get("k") is None

    def test_save_starts_session(self, session_store):
        session = Session(session_store)
        assert not session.is_started
        session.save()
        assert session_store.load(session.id) is not None

    def test_load_unknown(self, session_store):
        assert session_store.load("sess_nope") is None
        assert session_store.load(None) is None

    def test_delete_and_close(self):
        store = MemorySessionStore(cookie_name="X")
        a, b = store.start(), store.start()
        a.save()
        b.save()
        store.delete(a.id)
        assert list(store) == [b.id]
        store.close()
        assert len(store) == 0

    def test_remove_key(self, session_store):
        session = session_store.start()
        session.set("k", 1)
        session.remove("k")
        assert "k" not in session
