"""Tests for the hybrid preprocessor."""

import pytest

from prompt_condenser.dictionary import default_dictionary
from prompt_condenser.errors import InvalidInputError
from prompt_condenser.preprocessor import (
    HybridPreprocessor,
    drop_repeated_sentences,
    jaccard,
    key_terms,
    normalize,
    preprocess,
    retention_score,
)

SAMPLES = [
    "",
    "   ",
    "plain text",
    "Could you please explain this?",
    "Basically, the server is down.",
    "In order to save time, make use of the cache.",
    "I think that it is important to note that we really need a large number of tests",
    "Hello ,  world !! Thanks in advance",
    "I basically need to fix this , really .",
    "\tTabs\tand\nnewlines\n",
    "Just, just, just do it",
    "This is just-in-time",
    "How do I reverse a string?",
    "The cache stores user sessions in memory. The cache stores all user sessions in memory.",
    "Thanks!",
    "Please, thanks",
]


class TestNormalize:
    def test_collapses_whitespace(self):
        assert normalize("  hello   world  ") == "hello world"

    def test_strips_politeness_preamble(self):
        assert normalize("Could you please explain this?") == "explain this?"

    def test_filler_with_comma(self):
        assert normalize("Basically, the server is down.") == "the server is down."

    def test_filler_phrase(self):
        assert normalize("In my opinion, the API is slow.") == "the API is slow."

    def test_verbose_rewrites(self):
        assert normalize("In order to save time, make use of the cache.") == "to save time, use the cache."

    def test_punctuation_spacing(self):
        assert normalize("Hello , world !") == "Hello, world!"

    def test_longer_verbose_phrase_first(self):
        assert normalize("a large number of users") == "many users"
        assert normalize("a number of users") == "several users"

    def test_rejects_non_string(self):
        with pytest.raises(InvalidInputError):
            normalize(None)

    @pytest.mark.parametrize("text", SAMPLES)
    def test_idempotent(self, text):
        once = normalize(text)
        assert normalize(once) == once

    @pytest.mark.parametrize("text", SAMPLES)
    def test_never_longer(self, text):
        assert len(normalize(text)) <= len(text)

    def test_dictionary_concepts_are_fixed_points(self):
        for entry in default_dictionary():
            assert normalize(entry.concept) == entry.concept


class TestPreprocess:
    def test_reports_removed_and_ratio(self):
        result = preprocess("Basically, the server is down.")
        assert result.text == "the server is down."
        assert "Basically" in result.removed
        assert result.ratio > 0
        assert result.semantic_score == 100.0

    def test_empty(self):
        result = preprocess("")
        assert result.text == ""
        assert result.ratio == 0.0
        assert result.semantic_score == 100.0

    def test_extra_fillers(self):
        pre = HybridPreprocessor(["as per usual"])
        assert pre.normalize("As per usual, deploy now") == "deploy now"
        assert normalize("As per usual, deploy now") == "As per usual, deploy now"

    def test_blank_extra_fillers_ignored(self):
        assert HybridPreprocessor(["", "  "]).extra_fillers == ()


class TestRetention:
    def test_key_terms(self):
        assert key_terms("The big Server really crashed at 3am") == {"server", "crashed"}

    def test_partial_retention(self):
        assert retention_score("alpha beta gamma", "alpha") == pytest.approx(100 / 3)

    def test_no_key_terms(self):
        assert retention_score("a b c", "") == 100.0


class TestWholeWords:
    @pytest.mark.parametrize("text", [
        "This is just-in-time",
        "a clearly-defined API",
        "a really-long name",
    ])
    def test_hyphenated_compounds_kept(self, text):
        assert normalize(text) == text

    def test_standalone_filler_still_removed(self):
        assert normalize("It is just in time") == "It is in time"


class TestRepeatedSentences:
    def test_near_duplicate_dropped(self):
        text = "The cache stores user sessions in memory. The cache stores all user sessions in memory."
        assert normalize(text) == "The cache stores user sessions in memory."

    def test_exact_duplicate_after_filler_removal(self):
        text = "Restart the server now. Restart the server now please. Then check logs."
        assert normalize(text) == "Restart the server now. Then check logs."

    def test_distinct_sentences_kept(self):
        assert normalize("Open the file. Close the file.") == "Open the file. Close the file."

    def test_short_sentences_kept(self):
        assert normalize("Stop. Stop.") == "Stop. Stop."

    def test_reports_dropped_sentence(self):
        removed = []
        out = drop_repeated_sentences("Read the config file. Read the config file.", removed)
        assert out == "Read the config file."
        assert removed == ["Read the config file."]

    def test_single_sentence_untouched(self):
        assert drop_repeated_sentences("one two three") == "one two three"

    def test_jaccard(self):
        assert jaccard({"a", "b"}, {"b", "c"}) == pytest.approx(1 / 3)
        assert jaccard(set(), set()) == 0.0


class TestDirectives:
    def test_how_question(self):
        assert normalize("How do I reverse a string?") == "reverse a string."

    def test_what_question(self):
        assert normalize("What is a closure?") == "Define a closure."

    def test_why_question(self):
        assert normalize("Why does the build fail?") == "Explain the build fail."

    def test_passive_voice(self):
        assert normalize("The report was generated by the scheduler.") == "The report generated the scheduler."

    def test_leading_article_after_sentence(self):
        assert normalize("Run tests. The suite is slow.") == "Run tests. suite is slow."

    def test_abbreviations(self):
        assert normalize("Call the application programming interface") == "Call the API"
        assert normalize("Use artificial intelligence, for example") == "Use AI, e.g."

    def test_dictionary_terms_not_abbreviated(self):
        assert normalize("user interface and machine learning") == "user interface and machine learning"


class TestFillerOnly:
    @pytest.mark.parametrize("text", ["Please, thanks", "Thanks!", "Really, truly."])
    def test_kept_unchanged(self, text):
        assert normalize(text) == text

    def test_report(self):
        result = preprocess("Thanks!")
        assert result.text == "Thanks!"
        assert result.removed == []
        assert result.ratio == 0.0
        assert result.semantic_score == 100.0
