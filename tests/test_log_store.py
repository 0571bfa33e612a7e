from __future__ import annotations

from types import SimpleNamespace

import pytest

from browser_mcp.errors import ValidationError
from browser_mcp.log_store import EventLogStore
from browser_mcp.models import NetworkPhase


def _request(url: str, method: str = "GET", resource_type: str = "xhr", failure: str | None = None):
    return SimpleNamespace(url=url, method=method, resource_type=resource_type, failure=failure)


def _response(request, status: int, status_text: str = "OK"):
    return SimpleNamespace(url=request.url, status=status, status_text=status_text, request=request)


def test_console_type_filter_returns_only_matching_entry() -> None:
    store = EventLogStore(console_capacity=3)
    store.record_console("info", "a")
    store.record_console("error", "b")
    store.record_console("info", "c")

    out = store.get_logs(kinds=["console"], filters={"types": ["error"]})

    assert "network" not in out
    assert out["console"]["total"] == 3
    assert out["console"]["filtered"] == 1
    assert [e["text"] for e in out["console"]["entries"]] == ["b"]


def test_console_search_is_case_insensitive_and_combines_with_types() -> None:
    store = EventLogStore()
    store.record_console("log", "Loaded Widget")
    store.record_console("error", "widget crashed")
    store.record_console("error", "other failure")

    out = store.get_logs(kinds=["console"], filters={"search": "WIDGET"})
    assert out["console"]["filtered"] == 2

    out = store.get_logs(kinds=["console"], filters={"search": "widget", "types": ["error"]})
    assert [e["text"] for e in out["console"]["entries"]] == ["widget crashed"]


def test_entries_are_most_recent_first_and_limited() -> None:
    store = EventLogStore()
    for i in range(5):
        store.record_console("log", f"m{i}")

    out = store.get_logs(kinds=["console"], limit=2)

    assert out["console"]["filtered"] == 5
    assert [e["text"] for e in out["console"]["entries"]] == ["m4", "m3"]


def test_console_capacity_evicts_oldest() -> None:
    store = EventLogStore(console_capacity=2)
    for text in ("a", "b", "c"):
        store.record_console("log", text)

    out = store.get_logs(kinds=["console"])
    assert out["console"]["total"] == 2
    assert [e["text"] for e in out["console"]["entries"]] == ["c", "b"]


def test_request_then_failure_is_correlated_and_pending_cleared() -> None:
    store = EventLogStore()
    started = store.record_request("https://example.com/api", "POST", "fetch")
    assert store.is_pending("https://example.com/api", "POST")

    failed = store.record_request_failed("https://example.com/api", "POST", "net::ERR_FAILED", "fetch")

    assert failed.phase == NetworkPhase.FAILED
    assert failed.id == started.id
    assert failed.duration_ms is not None and failed.duration_ms >= 0
    assert failed.error == "net::ERR_FAILED"
    assert not store.is_pending("https://example.com/api", "POST")

    out = store.get_logs(kinds=["network"], filters={"failedOnly": True})
    assert out["network"]["filtered"] == 1
    assert out["network"]["entries"][0]["id"] == started.id


def test_response_without_pending_start_gets_fresh_id_and_no_duration() -> None:
    store = EventLogStore()
    event = store.record_response("https://example.com/", "GET", 200, "OK", "document")

    assert event.duration_ms is None
    assert event.id
    assert store.pending_count == 0


def test_network_filters_compose_with_and() -> None:
    store = EventLogStore()
    fixtures = [
        ("https://example.com/api/users", "GET", 200, "xhr"),
        ("https://example.com/api/users", "post", 201, "fetch"),
        ("https://example.com/api/orders", "GET", 404, "xhr"),
        ("https://example.com/app.js", "GET", 200, "script"),
        ("https://example.com/api/fail", "GET", 500, "fetch"),
    ]
    for url, method, status, rtype in fixtures:
        store.record_request(url, method, rtype)
        store.record_response(url, method, status, "", rtype)

    def ids(filters):
        out = store.get_logs(kinds=["network"], filters=filters)
        return [(e["url"], e.get("status")) for e in reversed(out["network"]["entries"])]

    assert ids({"methods": ["POST"]}) == [
        ("https://example.com/api/users", None),
        ("https://example.com/api/users", 201),
    ]
    assert ids({"statusCodes": [404, 500]}) == [
        ("https://example.com/api/orders", 404),
        ("https://example.com/api/fail", 500),
    ]
    assert ids({"statusRange": {"min": 200, "max": 299}, "urlPattern": r"/api/"}) == [
        ("https://example.com/api/users", 200),
        ("https://example.com/api/users", 201),
    ]
    assert ids({"resourceTypes": ["script"], "statusCodes": [200]}) == [
        ("https://example.com/app.js", 200),
    ]
    assert ids({"failedOnly": True}) == []


def test_clear_returns_pre_clear_counts_then_empties() -> None:
    store = EventLogStore()
    store.record_console("log", "x")
    store.record_console("error", "y")
    store.record_request("https://example.com/slow", "GET")

    out = store.get_logs(filters={"types": ["error"]}, clear=True)
    assert out["console"]["total"] == 2
    assert out["console"]["filtered"] == 1
    assert out["network"]["total"] == 1
    assert out["cleared"] == ["console", "network"]
    assert store.pending_count == 0

    again = store.get_logs()
    assert again["console"]["total"] == 0
    assert again["network"]["total"] == 0


def test_clear_only_selected_kind() -> None:
    store = EventLogStore()
    store.record_console("log", "kept?")
    store.record_request("https://example.com/", "GET")

    store.get_logs(kinds=["console"], clear=True)

    out = store.get_logs()
    assert out["console"]["total"] == 0
    assert out["network"]["total"] == 1
    assert store.pending_count == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"kinds": []},
        {"kinds": ["console", "dom"]},
        {"limit": 0},
        {"filters": {"urlPattern": "("}},
        {"filters": {"statusRange": {"min": "low"}}},
        {"filters": "errors"},
    ],
)
def test_invalid_queries_raise_validation_error(kwargs) -> None:
    store = EventLogStore()
    with pytest.raises(ValidationError):
        store.get_logs(**kwargs)


def test_attach_captures_page_events(page) -> None:
    store = EventLogStore()
    store.attach(page)

    page.emit_console("warning", "deprecated api")
    req = _request("https://example.com/data", "GET", "fetch")
    page.emit("request", req)
    page.emit("response", _response(req, 200))
    failed = _request("https://example.com/broken", "GET", "image", failure="net::ERR_ABORTED")
    page.emit("request", failed)
    page.emit("requestfailed", failed)

    out = store.get_logs()
    assert out["console"]["entries"][0] == {
        "timestamp": out["console"]["entries"][0]["timestamp"],
        "type": "warning",
        "text": "deprecated api",
    }
    phases = [e["phase"] for e in reversed(out["network"]["entries"])]
    assert phases == ["request", "response", "request", "failed"]
    assert out["network"]["entries"][0]["error"] == "net::ERR_ABORTED"
    assert store.pending_count == 0


def test_reattach_ignores_events_from_previous_page(page, page_factory) -> None:
    store = EventLogStore()
    store.attach(page)
    new_page = page_factory()
    store.attach(new_page)

    page.emit_console("log", "stale")
    new_page.emit_console("log", "fresh")

    out = store.get_logs(kinds=["console"])
    assert [e["text"] for e in out["console"]["entries"]] == ["fresh"]
    assert page.handlers["console"] == []


def test_console_callback_fires_and_errors_are_contained() -> None:
    seen = []

    def callback(entry):
        seen.append(entry.text)
        raise RuntimeError("client gone")

    store = EventLogStore(on_console_entry=callback)
    store.record_console("log", "hello")

    assert seen == ["hello"]
    assert len(store.console) == 1


def test_render_console_formats_one_line_per_entry() -> None:
    store = EventLogStore()
    store.record_console("log", "one")
    store.record_console("error", "two")

    assert store.render_console() == "[log] one\n[error] two"
