"""Unit tests for the keyword/rating positivity classifier."""
import pytest

from survey_chatbot.analysis import sentiment as sa


@pytest.mark.parametrize(
    "text",
    [
        "8",
        "I'd say 6 out of 10",
        "10",
        "yes",
        "yes, love it",
        "It is really good",
        "LOVE IT",
        "  excellent  ",
        "it was fine, all things considered",
    ],
)
def test_positive(text):
    assert sa.is_positive(text) is True
    assert sa.classify(text) == sa.SentimentLabel.POSITIVE


@pytest.mark.parametrize(
    "text",
    [
        "3",
        "5",
        "1 - awful",
        "bad",
        "no, it's bad",
        "ok",
        "not really",
        "I hate the dashboard",
        "meh",
        "it was fine",
    ],
)
def test_negative(text):
    assert sa.is_positive(text) is False
    assert sa.classify(text) == sa.SentimentLabel.NEGATIVE


def test_rating_overrides_keywords():
    # Rating decides before keywords are consulted.
    assert sa.is_positive("2, but the team is great") is False
    assert sa.is_positive("9 even though docs are poor") is True


def test_out_of_range_rating_falls_through_to_keywords():
    assert sa.extract_rating("15 great") is None
    assert sa.is_positive("15 great") is True
    assert sa.extract_rating("0") is None
    assert sa.is_positive("0") is False


def test_only_first_digit_run_counts():
    # "100" is out of range, so the later "7" is never looked at.
    assert sa.extract_rating("100 then 7") is None
    assert sa.extract_rating("v3 release") == 3


def test_both_keyword_sets_fall_back_to_length():
    short = "good but bad"
    long = "good parts, but some bad parts as well overall"
    assert sa.keyword_polarity(short) is None
    assert sa.is_positive(short) is False
    assert sa.is_positive(long) is True


def test_keywords_match_substrings():
    # "no" hides inside "know"; keywords are plain substrings.
    assert sa.keyword_polarity("I know") is False
    assert sa.keyword_polarity("unwell") is True


def test_length_uses_trimmed_text():
    padded = "   " + "x" * 20 + "   "
    assert sa.is_positive(padded) is False
    assert sa.is_positive("x" * 21) is True


@pytest.mark.parametrize("text", ["", "   ", "?!", "...", None])
def test_neutral(text):
    res = sa.analyze_sentiment(text)
    assert res.label == sa.SentimentLabel.NEUTRAL
    assert res.score == 0.0


def test_analyze_sentiment_scores():
    assert sa.analyze_sentiment("great").score == 1.0
    assert sa.analyze_sentiment("poor").score == -1.0
    assert sa.analyze_sentiment("great").to_dict() == {"label": "positive", "score": 1.0}


def test_is_positive_on_empty_input_is_negative():
    assert sa.is_positive("") is False
    assert sa.is_positive(None) is False
