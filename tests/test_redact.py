from __future__ import annotations

from transitsync._redact import summarize_for_log


def test_summarize_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "url": "https://maps.test/autocomplete",
        "params": {"input": "porta", "key": "AIza-secret", "Authorization": "Bearer abc"},
        "token": "tok",
    }

    summary = summarize_for_log(payload)
    assert summary["url"] == "https://maps.test/autocomplete"
    assert summary["params"]["input"] == "porta"
    assert summary["params"]["key"] == "<redacted>"
    assert summary["params"]["Authorization"] == "<redacted>"
    assert summary["token"] == "<redacted>"


def test_summarize_for_log_truncates_long_strings() -> None:
    summary = summarize_for_log({"value": "x" * 600}, max_string=10)
    assert summary["value"].startswith("x" * 10)
    assert "<truncated>" in summary["value"]


def test_summarize_for_log_caps_long_lists() -> None:
    summary = summarize_for_log(list(range(50)), max_items=3)
    assert summary == [0, 1, 2, "<+47 more>"]


def test_summarize_for_log_keeps_scalars() -> None:
    assert summarize_for_log(None) is None
    assert summarize_for_log(4) == 4
    assert summarize_for_log(b"\x00\x01") == "<bytes:2b>"
