"""Shared test fixtures."""
import io
import json

import httpx
import pytest
from rich.console import Console

from fastgpt.client import Meta, QueryResult, Reference
from fastgpt.config import SessionConfig
from fastgpt.session.loop import Session


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep the real user config and FASTGPT_* variables out of every test."""
    import os
    for name in list(os.environ):
        if name.startswith("FASTGPT_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


@pytest.fixture
def console():
    """Console writing plain text into a buffer; read it back with console.file.getvalue()."""
    return Console(file=io.StringIO(), width=200, force_terminal=False, color_system=None)


class FakeExecutor:
    """Stands in for FastGPTClient. Records every payload; answers or raises in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def ask(self, payload, *, cache=True, references=True, history_limit=0):
        self.calls.append({
            "payload": payload,
            "cache": cache,
            "references": references,
            "history_limit": history_limit,
        })
        outcome = self.outcomes.pop(0) if self.outcomes else "ok"
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, QueryResult):
            return outcome
        return make_result(str(outcome))

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return None


def make_result(answer, references=None):
    refs = references or []
    body = {
        "meta": {"id": "abc", "node": "us-east", "ms": 42},
        "data": {
            "output": answer,
            "references": [r.model_dump() for r in refs],
            "tokens": 7,
        },
    }
    return QueryResult(
        answer=answer,
        references=list(refs),
        raw=json.dumps(body),
        meta=Meta(id="abc", node="us-east", ms=42),
        tokens=7,
    )


@pytest.fixture
def fake_executor():
    return FakeExecutor


@pytest.fixture
def result_factory():
    return make_result


@pytest.fixture
def reference():
    return Reference(title="Example **site**", url="https://example.com", snippet="an &amp; snippet")


def scripted(*lines):
    """read_line replacement: yields each line, then EOF."""
    it = iter(lines)

    def read():
        try:
            return next(it)
        except StopIteration:
            raise EOFError
    return read


@pytest.fixture
def make_session(console):
    """Factory: make_session(executor, *input_lines, **config_overrides)."""
    def _make(executor, *lines, **overrides):
        config = SessionConfig(api_key="test-key", **overrides)
        return Session(config, executor, console=console, read_line=scripted(*lines))
    return _make


def api_body(output="It says hello", references=None, tokens=12):
    return {
        "meta": {"id": "req-1", "node": "us-east4", "ms": 930},
        "data": {"output": output, "references": references or [], "tokens": tokens},
    }


@pytest.fixture
def mock_api():
    """Factory building an httpx.MockTransport; captured requests land in transport.requests."""
    def _make(handler):
        requests = []

        def _handle(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        transport = httpx.MockTransport(_handle)
        transport.requests = requests
        return transport
    return _make


@pytest.fixture
def api_body_factory():
    return api_body
