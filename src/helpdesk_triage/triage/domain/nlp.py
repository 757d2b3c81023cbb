"""
Text Normalization
==================

Tokenization and keyword matching for Spanish support tickets.

Pipeline (``TextNormalizer.normalize``):
    lowercase -> strip diacritics -> non-word chars to spaces ->
    collapse whitespace -> split -> drop stopwords -> Snowball stem

Keyword matching keeps stopwords so that phrases such as "no funciona" or
"todos los usuarios" can match, but both sides are stemmed identically.
"""

import math
import re
import threading
import unicodedata
from collections import Counter
from typing import Iterable, Optional, Sequence

import snowballstemmer


NON_WORD = re.compile(r"[^\w\s]", re.UNICODE)
WHITESPACE = re.compile(r"\s+")

SPANISH_STOPWORDS = frozenset({
    "a", "al", "algo", "algunas", "ante", "antes", "aqui", "asi", "aun",
    "bien", "cada", "con", "contra", "cual", "cuales", "de", "del", "desde",
    "donde", "dos", "e", "el", "ella", "ellas", "ellos", "en", "entre", "era",
    "eramos", "eran", "eres", "es", "esa", "esas", "ese", "eso", "esos",
    "esta", "estaba", "estado", "estamos", "estan", "estar", "estas", "este",
    "esto", "estos", "estoy", "fue", "fueron", "ha", "han", "hasta", "hay",
    "he", "la", "las", "le", "les", "lo", "los", "me", "mi", "mis", "mucho",
    "muy", "nos", "nosotros", "nuestra", "nuestro", "o", "os", "otra", "otro",
    "para", "pero", "poco", "por", "porque", "que", "quien", "se", "sea",
    "ser", "si", "sido", "sin", "sobre", "solo", "son", "su", "sus", "tambien",
    "te", "tengo", "ti", "tiene", "tienen", "todo", "todos", "tu", "tus", "u",
    "un", "una", "uno", "unos", "usted", "ustedes", "y", "ya", "yo",
})


class TextNormalizer:
    """
    Cleans, tokenizes, filters and stems raw text.

    Stateless apart from a per-thread Snowball stemmer, so one instance can
    be shared by concurrent callers.
    """

    def __init__(
        self,
        stopwords: Iterable[str] = SPANISH_STOPWORDS,
        language: str = "spanish"
    ):
        self._stopwords = frozenset(stopwords)
        self._language = language
        self._local = threading.local()

    @property
    def stopwords(self) -> frozenset:
        return self._stopwords

    def _stemmer(self):
        stemmer = getattr(self._local, "stemmer", None)
        if stemmer is None:
            stemmer = snowballstemmer.stemmer(self._language)
            self._local.stemmer = stemmer
        return stemmer

    def clean(self, text: Optional[str]) -> str:
        """Lowercase, strip accents and punctuation, collapse whitespace."""
        if not text:
            return ""
        lowered = text.lower()
        decomposed = unicodedata.normalize("NFD", lowered)
        stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
        spaced = NON_WORD.sub(" ", stripped)
        return WHITESPACE.sub(" ", spaced).strip()

    def tokenize(self, text: Optional[str]) -> list[str]:
        cleaned = self.clean(text)
        return cleaned.split(" ") if cleaned else []

    def remove_stopwords(self, tokens: Sequence[str]) -> list[str]:
        return [token for token in tokens if token not in self._stopwords]

    def stem(self, tokens: Sequence[str]) -> list[str]:
        if not tokens:
            return []
        return self._stemmer().stemWords(list(tokens))

    def normalize(self, text: Optional[str]) -> list[str]:
        """Full pipeline: clean, tokenize, drop stopwords, stem."""
        return self.stem(self.remove_stopwords(self.tokenize(text)))

    def match_form(self, text: Optional[str]) -> list[str]:
        """Cleaned and stemmed tokens with stopwords kept, used for matching."""
        return self.stem(self.tokenize(text))

    @staticmethod
    def ngrams(tokens: Sequence[str], n: int = 2) -> list[str]:
        if n < 1:
            raise ValueError("n must be positive")
        return [" ".join(tokens[i:i + n]) for i in range(len(tokens) - n + 1)]


def _contains(haystack: Sequence[str], needle: Sequence[str]) -> bool:
    size = len(needle)
    if size == 0 or size > len(haystack):
        return False
    if size == 1:
        return needle[0] in haystack
    first = needle[0]
    for i in range(len(haystack) - size + 1):
        if haystack[i] == first and list(haystack[i:i + size]) == list(needle):
            return True
    return False


class KeywordMatcher:
    """Keyword matching, term frequency and TF-IDF over normalized text."""

    def __init__(self, normalizer: TextNormalizer):
        self._normalizer = normalizer

    @property
    def normalizer(self) -> TextNormalizer:
        return self._normalizer

    def matched_keywords(self, text: Optional[str], keywords: Sequence[str]) -> list[str]:
        """
        Return the keywords that occur in ``text``, in keyword order.

        Keywords that normalize to the same form are reported once, under
        the first spelling.
        """
        tokens = self._normalizer.match_form(text)
        if not tokens or not keywords:
            return []

        matched = []
        seen = set()
        for keyword in keywords:
            form = tuple(self._normalizer.match_form(keyword))
            if not form or form in seen:
                continue
            seen.add(form)
            if _contains(tokens, form):
                matched.append(keyword)
        return matched

    def keyword_score(self, text: Optional[str], keywords: Sequence[str]) -> float:
        """Percentage of ``keywords`` present in ``text``."""
        if not keywords:
            return 0.0
        return len(self.matched_keywords(text, keywords)) / len(keywords) * 100

    def term_frequency(self, text: Optional[str]) -> Counter:
        return Counter(self._normalizer.normalize(text))

    def extract_keywords(self, text: Optional[str], top_n: int = 10) -> list[str]:
        """Most frequent normalized tokens, ties in order of first appearance."""
        if top_n <= 0:
            return []
        return [token for token, _ in self.term_frequency(text).most_common(top_n)]

    def tf_idf(self, text: Optional[str], corpus: Sequence[str]) -> dict[str, float]:
        """
        TF-IDF of each token of ``text`` against ``corpus``.

        tf = count / token count; idf = log(len(corpus) / (1 + document
        frequency)). Returns an empty mapping for an empty text or corpus.
        """
        tokens = self._normalizer.normalize(text)
        if not tokens or not corpus:
            return {}

        documents = [set(self._normalizer.normalize(doc)) for doc in corpus]
        counts = Counter(tokens)
        total = len(tokens)

        scores = {}
        for token, count in counts.items():
            df = sum(1 for doc in documents if token in doc)
            scores[token] = (count / total) * math.log(len(documents) / (1 + df))
        return scores
