"""
Tests for webcase.config.HarnessConfig.
"""

from __future__ import annotations

import pytest

from webcase.config import DEFAULTS, HarnessConfig


class TestHarnessConfig:

    def test_defaults(self):
        cfg = HarnessConfig()
        assert cfg.get("client.base_url") == "http://testserver"
        assert cfg.get("client.follow_redirects") is False
        assert cfg.get("session.cookie_name") == "SESSID"
        assert cfg.get("fixtures.default_manager") is None
        assert cfg.get("fixtures.strict_references") is False

    def test_overrides_deep_merge(self):
        cfg = HarnessConfig(fixtures={"strict_references": True})
        assert cfg.get("fixtures.strict_references") is True
        assert cfg.get("fixtures.default_manager") is None

    def test_overrides_do_not_touch_defaults(self):
        HarnessConfig(session={"cookie_name": "OTHER"})
        assert DEFAULTS["session"]["cookie_name"] == "SESSID"

    def test_get_missing_returns_default(self):
        cfg = HarnessConfig()
        assert cfg.get("nope") is None
        assert cfg.get("client.nope", 42) == 42

    def test_set_creates_nested_keys(self):
        cfg = HarnessConfig()
        cfg.set("mail.transport", "memory")
        assert cfg.get("mail.transport") == "memory"
        assert "mail.transport" in cfg

    def test_getitem(self):
        cfg = HarnessConfig()
        assert cfg["session.cookie_name"] == "SESSID"
        with pytest.raises(KeyError):
            cfg["missing.key"]

    def test_to_dict_is_a_copy(self):
        cfg = HarnessConfig()
        data = cfg.to_dict()
        data["client"]["base_url"] = "changed"
        assert cfg.get("client.base_url") == "http://testserver"

    def test_override_restores(self):
        cfg = HarnessConfig()
        with cfg.override(fixtures__strict_references=True, client__base_url="https://x.test"):
            assert cfg.get("fixtures.strict_references") is True
            assert cfg.get("client.base_url") == "https://x.test"
        assert cfg.get("fixtures.strict_references") is False
        assert cfg.get("client.base_url") == "http://testserver"

    def test_override_restores_on_error(self):
        cfg = HarnessConfig()
        with pytest.raises(RuntimeError):
            with cfg.override(session__cookie_name="TMP"):
                raise RuntimeError
        assert cfg.get("session.cookie_name") == "SESSID"


class TestFromEnv:

    def test_reads_prefixed_values(self, tmp_path):
        env = tmp_path / ".env.test"
        env.write_text(
            "WEBCASE_FIXTURES__STRICT_REFERENCES=true\n"
            "WEBCASE_SESSION__COOKIE_NAME=BLOGSESS\n"
            "WEBCASE_CLIENT__TIMEOUT=30\n"
            "UNRELATED=1\n"
        )
        cfg = HarnessConfig.from_env(env)
        assert cfg.get("fixtures.strict_references") is True
        assert cfg.get("session.cookie_name") == "BLOGSESS"
        assert cfg.get("client.timeout") == 30
        assert cfg.get("unrelated") is None

    def test_keyword_overrides_win(self, tmp_path):
        env = tmp_path / ".env.test"
        env.write_text("WEBCASE_SESSION__COOKIE_NAME=FROMFILE\n")
        cfg = HarnessConfig.from_env(env, session={"cookie_name": "FROMCODE"})
        assert cfg.get("session.cookie_name") == "FROMCODE"

    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = HarnessConfig.from_env(tmp_path / "absent.env")
        assert cfg.to_dict() == HarnessConfig().to_dict()

    def test_custom_prefix(self, tmp_path):
        env = tmp_path / "blog.env"
        env.write_text("BLOG_FIXTURES__DEFAULT_MANAGER=audit\n")
        cfg = HarnessConfig.from_env(env, prefix="BLOG_")
        assert cfg.get("fixtures.default_manager") == "audit"


def test_webcase_config_fixture(webcase_config):
    assert isinstance(webcase_config, HarnessConfig)
    assert webcase_config.get("client.base_url") == "http://testserver"
