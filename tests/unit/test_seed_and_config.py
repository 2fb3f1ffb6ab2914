from __future__ import annotations

import httpx
import pytest

from common.config import (
    DEFAULT_LIST_NAME,
    DEFAULT_SEED_PATHS,
    DEFAULT_STORAGE_QUOTA,
    Settings,
)
from common.seed import SeedLocator


def test_seed_locator_tries_urls_in_order():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        if request.url.path == "/missing.json":
            return httpx.Response(404, text="not found")
        return httpx.Response(200, json={"Students": ["Ann"]})

    client = httpx.Client(transport=httpx.MockTransport(handler), timeout=5.0)
    with SeedLocator(client=client) as seeds:
        found = seeds.find(["https://example.test/missing.json", "https://example.test/lists.json"])

    assert found is not None
    location, text = found
    assert location == "https://example.test/lists.json"
    assert '"Students"' in text
    assert len(calls) == 2


def test_seed_locator_treats_transport_errors_as_absent():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    client = httpx.Client(transport=httpx.MockTransport(handler), timeout=5.0)
    seeds = SeedLocator(client=client)
    assert seeds.find(["http://example.test/lists.json"]) is None


def test_seed_locator_reads_relative_and_absolute_paths(tmp_path):
    (tmp_path / "data").mkdir()
    (tmp_path / "screens").mkdir()
    (tmp_path / "data" / "lists.json").write_text('{"A": ["a"]}', encoding="utf-8")
    seeds = SeedLocator(base_dir=tmp_path / "screens")

    found = seeds.find(["./lists.json", "../data/lists.json"])
    assert found == ("../data/lists.json", '{"A": ["a"]}')

    absolute = str(tmp_path / "data" / "lists.json")
    assert seeds.find([absolute]) == (absolute, '{"A": ["a"]}')
    assert seeds.find([]) is None


def test_settings_defaults_without_env(monkeypatch):
    for name in (
        "CLASSROOM_STORAGE_PATH",
        "CLASSROOM_STORAGE_QUOTA",
        "CLASSROOM_SEED_PATHS",
        "CLASSROOM_DEFAULT_LIST",
        "CLASSROOM_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    s = Settings.from_env()
    assert s.storage_quota == DEFAULT_STORAGE_QUOTA
    assert s.seed_paths == DEFAULT_SEED_PATHS
    assert s.default_list == DEFAULT_LIST_NAME
    assert s.log_level == "INFO"


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("CLASSROOM_STORAGE_PATH", "/tmp/classroom.json")
    monkeypatch.setenv("CLASSROOM_STORAGE_QUOTA", "none")
    monkeypatch.setenv("CLASSROOM_SEED_PATHS", "a.json, https://example.test/b.json\n c.json")
    monkeypatch.setenv("CLASSROOM_DEFAULT_LIST", "Students 5B")
    monkeypatch.setenv("CLASSROOM_LOG_LEVEL", "debug")

    s = Settings.from_env()
    assert s.storage_path == "/tmp/classroom.json"
    assert s.storage_quota is None
    assert s.seed_paths == ("a.json", "https://example.test/b.json", "c.json")
    assert s.default_list == "Students 5B"
    assert s.log_level == "DEBUG"


@pytest.mark.parametrize("raw", ["lots", "-5"])
def test_settings_rejects_bad_quota(monkeypatch, raw):
    monkeypatch.setenv("CLASSROOM_STORAGE_QUOTA", raw)
    with pytest.raises(RuntimeError):
        Settings.from_env()
