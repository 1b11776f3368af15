"""Tests for chat intent detection."""

import pytest

from vibeproxy.intent import Intent, KeywordIntentClassifier, classify_intent


@pytest.mark.parametrize("text,intent", [
    ("LGTM", Intent.APPROVE),
    ("please commit this", Intent.APPROVE),
    ("Deploy it to Vercel", Intent.DEPLOY),
    ("Add a contact form", Intent.MODIFY),
    ("refactor the navbar", Intent.MODIFY),
    ("What framework is this?", Intent.GENERAL),
])
def test_classify_intent(text, intent):
    """Test keyword classification."""
    assert classify_intent(text).intent == intent


def test_approve_checked_before_modify():
    """Test that approval wins over modification keywords."""
    result = classify_intent("Looks good, now add tests")

    assert result.intent == Intent.APPROVE
    assert result.keyword == "looks good"


def test_general_has_no_keyword():
    """Test the fallback classification."""
    result = KeywordIntentClassifier().classify("hello")

    assert result.intent == Intent.GENERAL
    assert result.keyword is None
