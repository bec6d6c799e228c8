"""Tests for the word tokenizer."""

import pytest

from scribe.tokenizer import PUNCTUATION, index_terms, tokenize


class TestTokenize:

    def test_splits_on_whitespace(self):
        assert tokenize("alpha beta\tgamma\ndelta") == ["alpha", "beta", "gamma", "delta"]

    def test_lowercases(self):
        assert tokenize("Hello WORLD") == ["hello", "world"]

    def test_lowercases_unicode(self):
        assert tokenize("ÉCOLE Straße") == ["école", "straße"]

    def test_splits_on_punctuation(self):
        assert tokenize("Hello, World!") == ["hello", "world"]
        assert tokenize("path/to/file.txt") == ["path", "to", "file", "txt"]
        assert tokenize("email@example.com") == ["email", "example", "com"]
        assert tokenize("[x]{y}(z)") == ["x", "y", "z"]
        assert tokenize("a`b~c|d^e") == ["a", "b", "c", "d", "e"]
        assert tokenize("back\\slash") == ["back", "slash"]

    def test_keeps_apostrophe_colon_underscore(self):
        assert tokenize("don't snake_case key:value") == ["don't", "snake_case", "key:value"]

    def test_strips_double_quotes(self):
        assert tokenize('He said "hi"') == ["he", "said", "hi"]

    def test_discards_empty_fragments(self):
        assert tokenize("a--b") == ["a", "b"]
        assert tokenize("...") == []
        assert tokenize('""') == []

    @pytest.mark.parametrize("text", ["", "   ", "\n\t "])
    def test_blank_content(self, text):
        assert tokenize(text) == []

    def test_keeps_duplicates_in_order(self):
        assert tokenize("Foo foo FOO bar") == ["foo", "foo", "foo", "bar"]

    def test_digits_are_tokens(self):
        assert tokenize("v1.2 2026-10-19") == ["v1", "2", "2026", "10", "19"]

    def test_deterministic(self):
        text = "The quick, brown fox -- jumps over: the 'lazy' dog!"
        assert tokenize(text) == tokenize(text)


class TestPunctuationSet:

    @pytest.mark.parametrize("ch", ["_", "'", ":"])
    def test_word_characters_excluded(self, ch):
        assert ch not in PUNCTUATION

    def test_every_punctuation_char_splits(self):
        for ch in PUNCTUATION:
            assert tokenize(f"left{ch}right") == ["left", "right"], ch


class TestIndexTerms:

    def test_deduplicates(self):
        assert index_terms("Foo foo bar, BAR!") == {"foo", "bar"}

    def test_empty(self):
        assert index_terms("") == set()
