"""
Text Similarity
===============

Blended similarity between two ticket texts:

    0.5 x cosine(term vectors) + 0.3 x jaccard(token sets)
    + 0.2 x levenshtein ratio(cleaned strings)

Every primitive is symmetric and bounded to [0, 1]. Identical cleaned
texts, including two empty texts, score exactly 1.0.
"""

import math
from collections import Counter
from typing import Optional

from rapidfuzz.distance import Levenshtein

from helpdesk_triage.triage.domain.nlp import TextNormalizer


COSINE_WEIGHT = 0.5
JACCARD_WEIGHT = 0.3
LEVENSHTEIN_WEIGHT = 0.2


class SimilarityEngine:
    """Cutoff-agnostic similarity scoring; callers decide what is a duplicate."""

    def __init__(self, normalizer: TextNormalizer):
        self._normalizer = normalizer

    def cosine(self, text_a: Optional[str], text_b: Optional[str]) -> float:
        vector_a = Counter(self._normalizer.normalize(text_a))
        vector_b = Counter(self._normalizer.normalize(text_b))

        # sorted vocabulary keeps the summation order independent of argument order
        vocabulary = sorted(set(vector_a) | set(vector_b))
        dot = sum(vector_a[token] * vector_b[token] for token in vocabulary)
        magnitude_a = math.sqrt(sum(count * count for count in vector_a.values()))
        magnitude_b = math.sqrt(sum(count * count for count in vector_b.values()))

        if magnitude_a == 0 or magnitude_b == 0:
            return 0.0
        return min(1.0, dot / (magnitude_a * magnitude_b))

    def jaccard(self, text_a: Optional[str], text_b: Optional[str]) -> float:
        set_a = set(self._normalizer.normalize(text_a))
        set_b = set(self._normalizer.normalize(text_b))
        union = set_a | set_b
        if not union:
            return 0.0
        return len(set_a & set_b) / len(union)

    def levenshtein_ratio(self, text_a: Optional[str], text_b: Optional[str]) -> float:
        clean_a = self._normalizer.clean(text_a)
        clean_b = self._normalizer.clean(text_b)
        longest = max(len(clean_a), len(clean_b))
        if longest == 0:
            return 1.0
        return 1.0 - Levenshtein.distance(clean_a, clean_b) / longest

    def similarity(self, text_a: Optional[str], text_b: Optional[str]) -> float:
        if self._normalizer.clean(text_a) == self._normalizer.clean(text_b):
            return 1.0

        score = (
            COSINE_WEIGHT * self.cosine(text_a, text_b)
            + JACCARD_WEIGHT * self.jaccard(text_a, text_b)
            + LEVENSHTEIN_WEIGHT * self.levenshtein_ratio(text_a, text_b)
        )
        return max(0.0, min(1.0, score))
