"""Unit tests for TextNormalizer and KeywordMatcher"""
import pytest


class TestTextNormalizer:
    def test_clean_strips_accents_case_and_punctuation(self, normalizer):
        assert normalizer.clean("¿Cómo   SOLICITO acceso?") == "como solicito acceso"

    def test_clean_handles_empty_and_none(self, normalizer):
        assert normalizer.clean("") == ""
        assert normalizer.clean(None) == ""
        assert normalizer.tokenize("  ¡¿!?  ") == []

    def test_normalize_drops_stopwords(self, normalizer):
        tokens = normalizer.normalize("el servidor de la red")

        assert len(tokens) == 2

    def test_normalize_is_accent_and_case_insensitive(self, normalizer):
        assert normalizer.normalize("Servidor CAÍDO") == normalizer.normalize("servidor caido")

    def test_match_form_keeps_stopwords(self, normalizer):
        assert len(normalizer.match_form("todos los usuarios")) == 3
        assert len(normalizer.normalize("todos los usuarios")) == 1

    def test_ngrams(self, normalizer):
        assert normalizer.ngrams(["a", "b", "c"], 2) == ["a b", "b c"]
        assert normalizer.ngrams(["a"], 2) == []

    def test_ngrams_rejects_non_positive_size(self, normalizer):
        with pytest.raises(ValueError):
            normalizer.ngrams(["a", "b"], 0)


class TestKeywordMatcher:
    def test_matched_keywords_in_keyword_order(self, matcher):
        matched = matcher.matched_keywords(
            "Servidor caído en producción",
            ["produccion", "impresora", "caido"],
        )

        assert matched == ["produccion", "caido"]

    def test_phrases_match_contiguously(self, matcher):
        assert matcher.matched_keywords("el sistema no funciona", ["no funciona"]) == ["no funciona"]
        assert matcher.matched_keywords("funciona, pero no siempre", ["no funciona"]) == []

    def test_equivalent_keywords_count_once(self, matcher):
        assert matcher.matched_keywords("servidor caído", ["caido", "caído", "CAIDO"]) == ["caido"]

    def test_no_match_on_empty_text(self, matcher):
        assert matcher.matched_keywords("", ["caido"]) == []
        assert matcher.matched_keywords(None, ["caido"]) == []

    def test_keyword_score_is_percentage(self, matcher):
        score = matcher.keyword_score("impresora sin papel", ["impresora", "papel", "teclado", "mouse"])

        assert score == 50.0

    def test_keyword_score_without_keywords(self, matcher):
        assert matcher.keyword_score("impresora", []) == 0.0

    def test_extract_keywords_orders_by_frequency(self, matcher, normalizer):
        keywords = matcher.extract_keywords("red impresora impresora impresora red teclado", top_n=2)

        assert keywords[0] == normalizer.normalize("impresora")[0]
        assert len(keywords) == 2

    def test_extract_keywords_with_zero_limit(self, matcher):
        assert matcher.extract_keywords("impresora", top_n=0) == []

    def test_tf_idf_rewards_rare_terms(self, matcher, normalizer):
        corpus = ["impresora sin toner", "impresora atascada"]
        scores = matcher.tf_idf("impresora teclado", corpus)

        common = normalizer.normalize("impresora")[0]
        rare = normalizer.normalize("teclado")[0]
        assert scores[rare] > scores[common]

    def test_tf_idf_empty_inputs(self, matcher):
        assert matcher.tf_idf("", ["impresora"]) == {}
        assert matcher.tf_idf("impresora", []) == {}
