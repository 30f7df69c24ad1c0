"""
Tests for webcase.console.
"""

from __future__ import annotations

import pytest

from blog_app import count_users, create_kernel, greet
from webcase.console import ConsoleApplication, as_argv


class TestAsArgv:

    def test_sequence(self):
        assert as_argv(["a", 1, "--x"]) == ["a", "1", "--x"]

    def test_none(self):
        assert as_argv(None) == []

    def test_mapping(self):
        argv = as_argv({
            "name": "Ada",
            "--shout": True,
            "--quiet": False,
            "--skip": None,
            "--tag": ["a", "b"],
            "-n": 3,
        })
        assert argv == ["Ada", "--shout", "--tag", "a", "--tag", "b", "-n", "3"]

    def test_positional_list(self):
        assert as_argv({"files": ["x.yml", "y.yml"]}) == ["x.yml", "y.yml"]


class TestConsoleApplication:

    def test_run_returns_click_result(self):
        kernel = create_kernel()
        console = ConsoleApplication(kernel)
        console.add(greet)
        result = console.run("greet", ["Ada"])
        assert result.exit_code == 0
        assert result.output == "Hello Ada\n"
        kernel.shutdown()

    def test_container_is_the_context_object(self):
        kernel = create_kernel()
        console = ConsoleApplication(kernel)
        console.add(count_users)
        assert console.run("users:count").output == "0 user(s)\n"
        assert kernel.booted
        kernel.shutdown()

    def test_unknown_command(self):
        console = ConsoleApplication(create_kernel())
        with pytest.raises(LookupError, match="nope"):
            console.find("nope")

    def test_usage_error_exit_code(self):
        console = ConsoleApplication(create_kernel())
        console.add(greet)
        assert console.run("greet").exit_code == 2
