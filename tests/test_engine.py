"""Tests for the process entry point and ProcessingResult."""

import asyncio
import json
import queue

import pytest
import structlog.testing

from lineweaver import (
    CancellationToken,
    Mode,
    Outcome,
    ProcessingConfig,
    ResultCache,
    Severity,
    aprocess,
    process,
)
from lineweaver.engine import HARD_INPUT_LIMIT, check_input
from lineweaver.errors import InputError
from lineweaver.strategies import STRATEGIES


class TestRejection:
    @pytest.mark.parametrize("text", ["", "   ", "\n\t\n"])
    def test_blank_input_rejected(self, text: str):
        result = process(text, "smart")
        assert result.outcome is Outcome.REJECTED
        assert result.text is None
        assert result.issues[0].severity is Severity.ERROR
        assert result.issues[0].code == "input_empty"
        assert not result.is_valid

    def test_non_string_rejected(self):
        result = process(None)  # type: ignore[arg-type]
        assert result.outcome is Outcome.REJECTED
        assert result.issues[0].code == "input_type"

    def test_oversized_input_rejected(self):
        result = process("a" * (HARD_INPUT_LIMIT + 1))
        assert result.outcome is Outcome.REJECTED
        assert result.issues[0].code == "input_too_large"
        assert result.original_length == HARD_INPUT_LIMIT + 1

    def test_check_input_raises(self):
        with pytest.raises(InputError):
            check_input("  ")


class TestResult:
    @pytest.mark.parametrize("mode", list(Mode))
    def test_processed_length_matches_text(self, mode: Mode):
        text = "# Title\n\nSome $text | with `code` and https://x.org\n- item"
        result = process(text, mode)
        assert result.outcome is Outcome.SUCCESS
        assert result.processed_length == len(result.text)
        assert result.original_length == len(text)
        assert result.mode is mode

    def test_stats_attached(self):
        result = process("Hello\n\nWorld")
        assert result.original_stats.paragraphs == 2
        assert result.processed_stats.paragraphs == 1
        assert result.processed_stats.words == 2

    def test_to_dict_is_json_serialisable(self):
        result = process("$a | Get-Item", "terminal")
        data = json.loads(json.dumps(result.to_dict()))
        assert data["mode"] == "terminal"
        assert data["outcome"] == "success"
        assert data["context"]["type"] == "terminal"
        assert data["is_valid"] is True

    def test_str_is_text(self):
        assert str(process("a\nb")) == "a b"

    def test_timestamp_is_set(self):
        assert process("x").timestamp.endswith("+00:00")

    def test_length_warning_keeps_result_valid(self):
        result = process("word " * 20, "simple", {"max_line_length": 50})
        assert [issue.code for issue in result.issues] == ["length"]
        assert result.is_valid


class TestConfigHandling:
    def test_mapping_config(self):
        result = process("x\n\ny", "custom", {"paragraphSeparator": "[P]"})
        assert result.text == "x [P] y"

    def test_config_object(self):
        result = process("x\n\ny", "custom", ProcessingConfig(paragraph_separator="[P]"))
        assert result.text == "x [P] y"

    def test_warnings_become_issues(self):
        result = process("x", "simple", {"maxLineLength": 10, "bogus": 1})
        codes = [(issue.severity, issue.code) for issue in result.issues]
        assert codes == [(Severity.WARNING, "config"), (Severity.WARNING, "config")]
        assert result.outcome is Outcome.SUCCESS

    def test_unknown_mode_falls_back_to_simple(self):
        result = process("a\n\nb", "fancy")
        assert result.mode is Mode.SIMPLE
        assert result.text == "a b"
        assert any("falling back" in issue.message for issue in result.issues)

    def test_infinite_number_option_becomes_warning(self):
        result = process("hello\nworld", "simple", {"max_line_length": float("inf")})
        assert result.outcome is Outcome.SUCCESS
        assert result.text == "hello world"
        assert [issue.code for issue in result.issues] == ["config"]

    def test_malformed_config_object_becomes_warning(self):
        config = ProcessingConfig(max_line_length="x")  # type: ignore[arg-type]
        result = process("hello\nworld", "simple", config)
        assert result.outcome is Outcome.SUCCESS
        assert result.text == "hello world"
        assert [issue.code for issue in result.issues] == ["config"]

    def test_unusable_config_falls_back_to_defaults(self):
        result = process("a\n\nb", "smart", "not a mapping")  # type: ignore[arg-type]
        assert result.outcome is Outcome.SUCCESS
        assert result.text == "a [PARA] b"
        assert [issue.code for issue in result.issues] == ["config"]

    def test_warnings_reported_on_rejection(self):
        result = process("", "simple", {"bogus": 1})
        assert [issue.code for issue in result.issues] == ["input_empty", "config"]


class TestFailure:
    def test_transform_error_returns_original(self, monkeypatch: pytest.MonkeyPatch):
        def boom(*args, **kwargs):
            raise RuntimeError("kaboom")

        monkeypatch.setattr(STRATEGIES[Mode.SMART], "apply", boom)
        result = process("some\ntext", "smart")
        assert result.outcome is Outcome.FAILED
        assert result.text == "some\ntext"
        assert result.processed_length == len("some\ntext")
        assert result.issues[-1].code == "transform_failed"
        assert "kaboom" in result.issues[-1].message
        assert not result.is_valid


class TestCaching:
    def test_hit_returns_same_result(self):
        cache = ResultCache()
        first = process("a\nb", "smart", cache=cache)
        second = process("a\nb", "smart", cache=cache)
        assert second is first
        assert cache.hits == 1
        assert len(cache) == 1

    def test_key_depends_on_mode_and_config(self):
        cache = ResultCache()
        process("a\n\nb", "smart", cache=cache)
        process("a\n\nb", "custom", cache=cache)
        process("a\n\nb", "smart", {"paragraph_separator": "[P]"}, cache=cache)
        assert len(cache) == 3
        assert cache.hits == 0

    def test_rejections_not_cached(self):
        cache = ResultCache()
        process("", cache=cache)
        assert len(cache) == 0

    def test_cached_result_carries_no_stale_config_warnings(self):
        cache = ResultCache()
        noisy = process("a\nb", "smart", {"bogus": 1}, cache=cache)
        clean = process("a\nb", "smart", cache=cache)
        assert cache.hits == 1
        assert [issue.code for issue in noisy.issues] == ["config"]
        assert clean.issues == ()
        assert clean.text == noisy.text

    def test_cache_hit_reports_current_config_warnings(self):
        cache = ResultCache()
        process("a\nb", "smart", cache=cache)
        noisy = process("a\nb", "smart", {"maxLineLength": 5}, cache=cache)
        assert cache.hits == 0
        again = process("a\nb", "smart", {"max_line_length": 50, "bogus": 1}, cache=cache)
        assert cache.hits == 1
        assert [issue.code for issue in noisy.issues] == ["config"]
        assert "clamped" in noisy.issues[0].message
        assert [issue.message for issue in again.issues] == ["Unknown option 'bogus' ignored"]

    def test_cache_does_not_change_results(self):
        text = "- a\n- b"
        assert process(text, "smart", cache=ResultCache()).text == process(text, "smart").text


class TestChunking:
    TEXT = "word\n" * 20_000

    def test_large_input_is_chunked(self):
        result = process(self.TEXT, "simple", {"chunk_size": 4096})
        assert result.chunked
        assert result.text == " ".join(["word"] * 20_000)

    def test_chunked_terminal_matches_whole(self):
        text = "$x | y\n" * 10_000
        chunked = process(text, "terminal", {"chunk_size": 1000})
        whole = process(text, "terminal", {"large_input_threshold": 1_000_000})
        assert chunked.chunked and not whole.chunked
        assert chunked.text == whole.text

    def test_structural_modes_are_not_chunked(self):
        result = process(self.TEXT, "smart")
        assert not result.chunked

    def test_progress_messages(self):
        progress: queue.Queue = queue.Queue()
        process(self.TEXT, "simple", {"chunk_size": 10_000}, progress=progress, max_workers=2)
        messages = []
        while not progress.empty():
            messages.append(progress.get_nowait())
        assert messages
        assert [m.completed for m in messages] == list(range(1, len(messages) + 1))
        assert messages[-1].completed == messages[-1].total
        assert sorted(m.index for m in messages) == list(range(messages[-1].total))

    def test_cancelled_before_start(self):
        token = CancellationToken()
        token.cancel()
        result = process(self.TEXT, "simple", cancel=token)
        assert result.outcome is Outcome.CANCELLED
        assert result.text is None
        assert result.issues[-1].code == "cancelled"


class TestAsync:
    def test_aprocess_small_input(self):
        result = asyncio.run(aprocess("Hello\n\nWorld"))
        assert result.text == "Hello World"
        assert not result.chunked

    def test_aprocess_chunked(self):
        text = "word\n" * 20_000
        result = asyncio.run(aprocess(text, "simple", {"chunk_size": 4096}))
        assert result.chunked
        assert result.text == process(text, "simple", {"chunk_size": 4096}).text

    def test_aprocess_keeps_config_warnings(self):
        result = asyncio.run(aprocess("x", "simple", {"bogus": True}))
        assert [issue.code for issue in result.issues] == ["config"]

    def test_aprocess_small_input_logs_config_warning_once(self):
        with structlog.testing.capture_logs() as logs:
            asyncio.run(aprocess("x", "simple", {"bogus": True}))
        assert [entry["event"] for entry in logs].count("config_warning") == 1

    def test_aprocess_small_input_uses_cache(self):
        cache = ResultCache()
        first = asyncio.run(aprocess("a\nb", "smart", cache=cache))
        second = asyncio.run(aprocess("a\nb", "smart", cache=cache))
        assert second is first
        assert cache.hits == 1

    def test_aprocess_cancelled(self):
        token = CancellationToken()
        token.cancel()
        result = asyncio.run(aprocess("word\n" * 20_000, "simple", cancel=token))
        assert result.outcome is Outcome.CANCELLED

    def test_aprocess_rejects_empty(self):
        result = asyncio.run(aprocess(""))
        assert result.outcome is Outcome.REJECTED
