"""Text featurization with hashed word and character n-grams.

Turns raw (OCR) text into a fixed-dimension sparse vector without any
fitted state: the vector depends only on the text and on the vectorizer's
parameters. This lets the training pipeline featurize a dataset once and
reuse the result across every fold of cross-validation.

Features:
- Unicode word n-grams (unigrams and bigrams by default)
- Character n-grams over the normalized token stream (trigrams by default)
- CRC32 feature hashing into a fixed number of buckets
- Sublinear term frequency and L2 normalization
"""

from __future__ import annotations

import math
import re
import zlib
from collections import Counter
from dataclasses import dataclass

# Letters and digits in any script; OCR output is frequently non-English.
_WORD_RE = re.compile(r"[^\W_]+")

SparseVector = dict[int, float]


def _tokenize(text: str) -> list[str]:
    """Extract lowercase word tokens from text."""
    return [m.group().lower() for m in _WORD_RE.finditer(text)]


def _ngrams(tokens: list[str], n: int) -> list[str]:
    """Generate n-grams from a token list."""
    if n <= 1:
        return tokens
    return ["_".join(tokens[i : i + n]) for i in range(len(tokens) - n + 1)]


def _char_ngrams(tokens: list[str], n: int) -> list[str]:
    """Character n-grams of the space-joined tokens, with boundary markers."""
    if n <= 0 or not tokens:
        return []
    joined = "<" + " ".join(tokens) + ">"
    return [joined[i : i + n] for i in range(len(joined) - n + 1)]


@dataclass
class HashingVectorizer:
    """Stateless text vectorizer based on the hashing trick.

    Args:
        n_features: Number of hash buckets (feature dimension).
        word_ngram_range: Tuple of (min_n, max_n) for word n-grams.
        char_ngram: Character n-gram length; ``0`` disables character grams.
        sublinear_tf: Use ``1 + log(tf)`` instead of raw term frequency.
    """

    n_features: int = 2 ** 16
    word_ngram_range: tuple[int, int] = (1, 2)
    char_ngram: int = 3
    sublinear_tf: bool = True

    def __post_init__(self) -> None:
        if self.n_features <= 0:
            raise ValueError(f"n_features must be positive, got {self.n_features}")
        min_n, max_n = self.word_ngram_range
        if min_n < 1 or max_n < min_n:
            raise ValueError(f"invalid word_ngram_range: {self.word_ngram_range}")

    def transform(self, documents: list[str]) -> list[SparseVector]:
        """Transform documents into hashed feature vectors.

        Args:
            documents: List of raw text documents.

        Returns:
            List of sparse vectors (dicts of {bucket: weight}); an empty
            document yields an empty vector.
        """
        return [self.transform_one(doc) for doc in documents]

    def transform_one(self, text: str) -> SparseVector:
        """Transform a single document."""
        counts: Counter[int] = Counter(self._bucket(t) for t in self._extract_terms(text))

        vec: SparseVector = {}
        for bucket, raw_tf in counts.items():
            vec[bucket] = 1 + math.log(raw_tf) if self.sublinear_tf else float(raw_tf)

        # L2 normalization
        norm = math.sqrt(sum(v ** 2 for v in vec.values())) or 1.0
        return {k: v / norm for k, v in vec.items()}

    def _extract_terms(self, text: str) -> list[str]:
        """Tokenize and generate word and character n-grams from text."""
        tokens = _tokenize(text or "")

        all_terms: list[str] = []
        min_n, max_n = self.word_ngram_range
        for n in range(min_n, max_n + 1):
            all_terms.extend("w:" + g for g in _ngrams(tokens, n))
        all_terms.extend("c:" + g for g in _char_ngrams(tokens, self.char_ngram))
        return all_terms

    def _bucket(self, term: str) -> int:
        return zlib.crc32(term.encode("utf-8")) % self.n_features

    def to_dict(self) -> dict:
        """Serialize vectorizer parameters to a dictionary."""
        return {
            "n_features": self.n_features,
            "word_ngram_range": list(self.word_ngram_range),
            "char_ngram": self.char_ngram,
            "sublinear_tf": self.sublinear_tf,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HashingVectorizer":
        """Deserialize vectorizer from a dictionary."""
        return cls(
            n_features=data["n_features"],
            word_ngram_range=tuple(data["word_ngram_range"]),
            char_ngram=data["char_ngram"],
            sublinear_tf=data["sublinear_tf"],
        )
