"""Tests for the hashing text vectorizer."""

from __future__ import annotations

import math

import pytest

from doctype_classifier.features import HashingVectorizer, _char_ngrams, _ngrams, _tokenize


class TestTokenize:
    def test_lowercases_and_splits_on_punctuation(self):
        assert _tokenize("Rechnung-Nr. 1001, Betrag") == ["rechnung", "nr", "1001", "betrag"]

    def test_keeps_non_ascii_letters(self):
        assert _tokenize("Rückgeld für Brötchen") == ["rückgeld", "für", "brötchen"]

    def test_underscore_is_a_separator(self):
        assert _tokenize("a_b") == ["a", "b"]

    def test_empty(self):
        assert _tokenize("") == []


class TestNgrams:
    def test_bigrams(self):
        assert _ngrams(["a", "b", "c"], 2) == ["a_b", "b_c"]

    def test_unigrams_returned_as_is(self):
        assert _ngrams(["a", "b"], 1) == ["a", "b"]

    def test_char_trigrams_with_markers(self):
        assert _char_ngrams(["ab"], 3) == ["<ab", "ab>"]

    def test_char_ngrams_disabled(self):
        assert _char_ngrams(["abc"], 0) == []


class TestHashingVectorizer:
    """Tests for HashingVectorizer."""

    def test_vectors_are_l2_normalized(self):
        vec = HashingVectorizer().transform_one("Rechnung Nummer 123 Betrag EUR")
        norm = math.sqrt(sum(v * v for v in vec.values()))
        assert norm == pytest.approx(1.0)

    def test_buckets_within_dimension(self):
        vectorizer = HashingVectorizer(n_features=64)
        vec = vectorizer.transform_one("Kassenbon Summe bar Rückgeld vielen Dank")
        assert vec
        assert all(0 <= bucket < 64 for bucket in vec)

    def test_deterministic_across_instances(self):
        text = "Quittung Apotheke Summe 12,95"
        assert HashingVectorizer().transform_one(text) == HashingVectorizer().transform_one(text)

    def test_empty_text_gives_empty_vector(self):
        vectorizer = HashingVectorizer()
        assert vectorizer.transform_one("") == {}
        assert vectorizer.transform_one("  ,;  ") == {}

    def test_transform_preserves_order(self):
        vectorizer = HashingVectorizer()
        docs = ["Rechnung", "", "Kassenbon"]
        vectors = vectorizer.transform(docs)
        assert len(vectors) == 3
        assert vectors[1] == {}
        assert vectors[0] == vectorizer.transform_one("Rechnung")

    def test_case_insensitive(self):
        vectorizer = HashingVectorizer()
        assert vectorizer.transform_one("RECHNUNG Betrag") == vectorizer.transform_one("rechnung betrag")

    def test_raw_term_frequency(self):
        vectorizer = HashingVectorizer(word_ngram_range=(1, 1), char_ngram=0, sublinear_tf=False)
        vec = vectorizer.transform_one("summe summe")
        assert len(vec) == 1
        assert list(vec.values()) == [pytest.approx(1.0)]

    def test_terms_include_word_and_char_grams(self):
        terms = HashingVectorizer()._extract_terms("Rechnung Nummer")
        assert "w:rechnung" in terms
        assert "w:rechnung_nummer" in terms
        assert "c:<re" in terms

    @pytest.mark.parametrize("kwargs", [
        {"n_features": 0},
        {"word_ngram_range": (0, 1)},
        {"word_ngram_range": (2, 1)},
    ])
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(ValueError):
            HashingVectorizer(**kwargs)

    def test_serialization(self):
        vectorizer = HashingVectorizer(n_features=1024, word_ngram_range=(1, 3), char_ngram=4)
        restored = HashingVectorizer.from_dict(vectorizer.to_dict())
        assert restored == vectorizer
        text = "Rechnung Nr 5120 Lieferschein"
        assert restored.transform_one(text) == vectorizer.transform_one(text)
