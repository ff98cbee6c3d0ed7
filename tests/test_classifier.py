"""Tests for context classification."""

import pytest

from lineweaver import ContextType, classify
from lineweaver.classifier import CONFIDENCE_THRESHOLD


class TestClassify:
    def test_powershell_is_terminal(self):
        ctx = classify("$var = Get-Process | Where-Object Name")
        assert ctx.type is ContextType.TERMINAL
        assert ctx.confidence > 0.3
        assert ctx.shell_intent
        assert {"shell_variable", "cmdlet", "pipe", "shell_intent"} <= set(ctx.features)

    def test_plain_sentence(self):
        ctx = classify("Just a plain sentence.")
        assert ctx.type is ContextType.PLAIN
        assert ctx.confidence == 0
        assert not ctx.shell_intent
        assert ctx.features == ()

    def test_python_code(self):
        ctx = classify("def main():\n    print('hi')\n")
        assert ctx.type is ContextType.CODE
        assert ctx.confidence == pytest.approx(0.7)

    def test_markdown(self):
        ctx = classify("# Heading\n\nSome **bold** text and a [link](http://x.org).")
        assert ctx.type is ContextType.MARKDOWN
        assert "md_heading" in ctx.features

    def test_list(self):
        ctx = classify("1. first\n2. second")
        assert ctx.type is ContextType.LIST
        assert ctx.confidence == pytest.approx(0.35)

    def test_scores_are_clamped(self):
        text = "$a | Get-Item -Force > out.txt; `$b @\"\nx\n\"@ " + "$|&" * 20
        ctx = classify(text)
        assert ctx.scores["terminal"] == 1.0
        assert all(0.0 <= score <= 1.0 for score in ctx.scores.values())

    def test_weak_signal_stays_plain(self):
        ctx = classify("price is $5")
        assert ctx.type is ContextType.PLAIN
        assert 0 < ctx.confidence < CONFIDENCE_THRESHOLD

    def test_only_sample_is_inspected(self):
        text = "x " * 1500 + "$a | Get-Item"
        assert classify(text).type is ContextType.PLAIN
        assert classify(text, sample_size=5000).type is ContextType.TERMINAL

    def test_shell_intent_independent_of_winner(self):
        ctx = classify("def run():\n    os.system('ls | grep x')\n$HOME")
        assert ctx.type is ContextType.CODE
        assert ctx.shell_intent
