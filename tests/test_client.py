import json
import subprocess
import sys

import httpx
import pytest

from services.ingest import client as client_module
from services.ingest.client import JiraCLISource, JiraRestSource, SourceFetchError


def completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def fake_run(monkeypatch):
    calls = []
    outputs = []

    def run(cmd, **kwargs):
        calls.append(cmd)
        return outputs.pop(0)

    monkeypatch.setattr(client_module.subprocess, "run", run)
    return calls, outputs


def test_cli_first_page_has_no_cursor_filter(fake_run):
    calls, outputs = fake_run
    outputs.append(completed(json.dumps([{"key": "P-3"}, {"key": "P-2"}])))

    page = JiraCLISource(binary="jira").fetch_page("P", "", 50)

    assert calls[0] == ["jira", "issue", "list", "-p", "P", "--raw", "--paginate", "0:50"]
    assert [r["key"] for r in page.records] == ["P-3", "P-2"]
    assert page.next_cursor == "P-2"
    assert not page.exhausted


def test_cli_next_page_filters_by_cursor(fake_run):
    calls, outputs = fake_run
    outputs.append(completed(json.dumps([{"key": "P-1"}])))

    JiraCLISource(binary="jira").fetch_page("P", "P-2", 100)

    assert calls[0][-2:] == ["-q", "key < P-2"]


def test_cli_page_size_is_clamped(fake_run):
    calls, outputs = fake_run
    outputs.append(completed("[]"))

    JiraCLISource(binary="jira").fetch_page("P", "", 500)

    assert "0:100" in calls[0]


def test_cli_empty_array_is_exhausted(fake_run):
    _, outputs = fake_run
    outputs.append(completed("[]"))

    page = JiraCLISource().fetch_page("P", "P-1", 10)

    assert page.exhausted
    assert page.records == []


def test_cli_empty_output_is_exhausted(fake_run):
    _, outputs = fake_run
    outputs.append(completed(""))

    assert JiraCLISource().fetch_page("P", "P-1", 10).exhausted


def test_cli_nonzero_exit_raises(fake_run):
    _, outputs = fake_run
    outputs.append(completed("", returncode=1, stderr="unauthorized"))

    with pytest.raises(SourceFetchError):
        JiraCLISource().fetch_page("P", "", 10)


def test_cli_invalid_json_raises(fake_run):
    _, outputs = fake_run
    outputs.append(completed("not json"))

    with pytest.raises(SourceFetchError):
        JiraCLISource().fetch_page("P", "", 10)


def test_cli_last_record_without_key_raises(fake_run):
    _, outputs = fake_run
    outputs.append(completed(json.dumps([{"key": "P-2"}, {"fields": {}}])))

    with pytest.raises(SourceFetchError):
        JiraCLISource().fetch_page("P", "", 10)


def test_cli_missing_binary_raises(monkeypatch):
    def run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(client_module.subprocess, "run", run)
    with pytest.raises(SourceFetchError):
        JiraCLISource(binary="no-such-jira").fetch_page("P", "", 10)


def rest_source(handler):
    return JiraRestSource(
        "https://example.atlassian.net/",
        "me@example.com",
        "token",
        transport=httpx.MockTransport(handler),
    )


def test_rest_builds_cursor_jql():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("authorization", "")
        return httpx.Response(200, json={"issues": [{"key": "P-9"}, {"key": "P-8"}]})

    page = rest_source(handler).fetch_page("P", "P-10", 2)

    assert seen["path"] == "/rest/api/3/search/jql"
    assert seen["body"]["jql"] == 'project = "P" AND key < P-10 ORDER BY updated DESC, key DESC'
    assert seen["body"]["maxResults"] == 2
    assert "description" in seen["body"]["fields"]
    assert seen["auth"].startswith("Basic ")
    assert page.next_cursor == "P-8"


def test_rest_first_page_jql():
    source = rest_source(lambda request: httpx.Response(200, json={"issues": []}))
    assert source.build_jql("P", "") == 'project = "P" ORDER BY updated DESC, key DESC'
    assert source.fetch_page("P", "", 10).exhausted


def test_rest_http_error_raises():
    source = rest_source(lambda request: httpx.Response(401, text="nope"))
    with pytest.raises(SourceFetchError):
        source.fetch_page("P", "", 10)


def test_rest_transport_error_raises():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(SourceFetchError):
        rest_source(handler).fetch_page("P", "", 10)


@pytest.fixture
def latin1_jira(tmp_path):
    """jira stand-in whose output is Latin-1, not UTF-8"""
    script = tmp_path / "jira"
    script.write_bytes(b"#!/bin/sh\nprintf '[{\"key\":\"P-1\",\"fields\":{\"summary\":\"caf\\351\"}}]'\n")
    script.chmod(0o755)
    return str(script)


@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
def test_cli_non_utf8_output_raises(latin1_jira):
    with pytest.raises(SourceFetchError, match="UTF-8"):
        JiraCLISource(binary=latin1_jira).fetch_page("P", "", 10)


def test_cli_decode_error_during_run_raises(monkeypatch):
    def run(cmd, **kwargs):
        raise UnicodeDecodeError("utf-8", b"caf\xe9", 3, 4, "invalid continuation byte")

    monkeypatch.setattr(client_module.subprocess, "run", run)
    with pytest.raises(SourceFetchError):
        JiraCLISource().fetch_page("P", "", 10)
