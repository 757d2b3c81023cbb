"""Unit tests for keyword classification, priority and the review policy"""
import pytest

from helpdesk_triage.config import Category, Dimension, Level, TicketType
from helpdesk_triage.shared.infrastructure.config_source import ConfigSource
from helpdesk_triage.triage.application import (
    ClassificationService,
    LOW_CATEGORY_CONFIDENCE,
    LOW_OVERALL_CONFIDENCE,
)
from helpdesk_triage.triage.domain import (
    ClassRule,
    DimensionClassifier,
    DimensionResult,
    DimensionRules,
    PriorityMatrix,
    PriorityResolver,
)
from helpdesk_triage.triage.domain.rules import round_half_up


class TestEndToEnd:
    def test_production_outage(self, classification_service):
        result = classification_service.classify(
            "Servidor caído en producción",
            "sistema completamente inaccesible para todos los usuarios",
        )

        assert result.type.id == TicketType.INCIDENTE
        assert result.type.label == "INCIDENTE"
        assert result.urgency.id == Level.CRITICAL
        assert result.impact.id == Level.CRITICAL
        assert result.priority.id == 1
        assert result.priority.label == "CRITICAL"
        assert result.confidence > 60

    def test_access_question(self, classification_service):
        result = classification_service.classify(
            "¿Cómo solicito acceso a la carpeta compartida?",
            "quisiera saber el procedimiento",
        )

        assert result.type.id in (TicketType.CONSULTA, TicketType.SOLICITUD)
        assert result.urgency.id in (Level.LOW, Level.MEDIUM)
        assert result.category.id == Category.ACCESOS
        assert result.category.label == "ACCESOS"


class TestClassify:
    def test_empty_input_falls_back_to_defaults(self, classification_service):
        result = classification_service.classify("", "")

        assert result.type.id == TicketType.CONSULTA
        assert result.category.id == Category.CONSULTA
        assert result.urgency.id == Level.MEDIUM
        assert result.impact.id == Level.MEDIUM
        assert result.priority.id == Level.MEDIUM
        assert result.confidence == 0
        assert result.requires_review is True
        assert result.keywords == ()

    def test_none_title_is_accepted(self, classification_service):
        result = classification_service.classify(None, "la impresora no imprime")

        assert result.category.id == Category.HARDWARE

    @pytest.mark.parametrize("title,description", [
        ("urgente urgente caído inaccesible producción", "servidor red vpn internet wifi"),
        ("hola", ""),
        ("No funciona el correo", "outlook no abre desde esta mañana"),
    ])
    def test_confidences_stay_in_range(self, classification_service, title, description):
        result = classification_service.classify(title, description)

        for dimension in (result.type, result.category, result.urgency, result.impact, result.priority):
            assert 0 <= dimension.confidence <= 100
        assert 0 <= result.confidence <= 100

    def test_priority_confidence_is_lower_of_urgency_and_impact(self, classification_service):
        result = classification_service.classify("Servidor caído en producción", "")

        assert result.priority.confidence == min(result.urgency.confidence, result.impact.confidence)

    def test_overall_confidence_is_rounded_mean(self, classification_service):
        result = classification_service.classify(
            "Servidor caído en producción",
            "sistema completamente inaccesible para todos los usuarios",
        )
        mean = (
            result.type.confidence + result.category.confidence
            + result.urgency.confidence + result.impact.confidence
        ) / 4

        assert result.confidence == round_half_up(mean)

    def test_keywords_are_limited(self, rule_set, matcher):
        service = ClassificationService(_Source(rule_set), matcher, extracted_keywords=3)

        result = service.classify("uno dos tres cuatro cinco seis", "siete ocho")

        assert len(result.keywords) == 3

    def test_rules_are_read_on_every_call(self, rule_set, matcher):
        source = _Source(rule_set)
        service = ClassificationService(source, matcher)

        service.classify("impresora", "")
        service.classify("impresora", "")

        assert source.reads == 2

    def test_to_dict(self, classification_service):
        data = classification_service.classify("impresora atascada", "").to_dict()

        assert data["category"]["label"] == "HARDWARE"
        assert set(data) >= {"type", "category", "urgency", "impact", "priority", "confidence"}


class TestValidate:
    def test_low_overall_confidence_is_invalid(self, classification_service):
        outcome = classification_service.validate(classification_service.classify("hola", ""))

        assert outcome.is_valid is False
        assert outcome.requires_review is True
        assert outcome.reason == LOW_OVERALL_CONFIDENCE

    def test_low_category_confidence_needs_review(self, classification_service):
        result = classification_service.classify(
            "Servidor caído en producción",
            "sistema completamente inaccesible para todos los usuarios",
        )
        assert result.category.confidence < 50

        outcome = classification_service.validate(result)

        assert outcome.is_valid is True
        assert outcome.requires_review is True
        assert outcome.reason == LOW_CATEGORY_CONFIDENCE

    def test_confident_classification_passes(self, classification_service):
        result = classification_service.classify(
            "Urgente: servidor caído en producción",
            "la red y la vpn no conectan, internet inaccesible para todos los usuarios",
        )

        outcome = classification_service.validate(result)

        assert outcome.is_valid is True
        assert outcome.requires_review is False
        assert outcome.reason is None


class TestDimensionClassifier:
    @pytest.fixture
    def rules(self):
        return DimensionRules(
            dimension=Dimension.CATEGORY,
            default_id=10,
            default_label="CONSULTA",
            normalizer=3,
            classes=(
                ClassRule(id=7, label="HARDWARE", weight=1, keywords=("impresora",)),
                ClassRule(id=9, label="RED", weight=1, keywords=("wifi",)),
            ),
        )

    def test_tie_goes_to_first_declared_class(self, rules, matcher):
        result = DimensionClassifier(rules, matcher).classify("el wifi y la impresora")

        assert result.id == 7
        assert result.confidence == 67

    def test_no_match_returns_default(self, rules, matcher):
        result = DimensionClassifier(rules, matcher).classify("nada relevante")

        assert result == DimensionResult(id=10, label="CONSULTA", confidence=0)

    def test_confidence_saturates(self, matcher):
        rules = DimensionRules(
            dimension=Dimension.URGENCY,
            default_id=3,
            default_label="MEDIUM",
            normalizer=1,
            classes=(ClassRule(id=1, label="CRITICAL", weight=4, keywords=("urgente", "caido")),),
        )

        assert DimensionClassifier(rules, matcher).classify("urgente caido").confidence == 100

    def test_non_positive_normalizer_is_rejected(self):
        with pytest.raises(ValueError):
            DimensionRules(dimension=Dimension.TYPE, default_id=3, default_label="CONSULTA", normalizer=0)


class TestPriorityResolver:
    def test_default_matrix_is_complete(self, rule_set):
        assert rule_set.priority_matrix.missing() == []

    @pytest.mark.parametrize("urgency,impact,expected", [
        (1, 1, 1), (1, 3, 2), (2, 2, 2), (3, 3, 3), (4, 4, 4), (4, 1, 3),
    ])
    def test_default_matrix_values(self, rule_set, urgency, impact, expected):
        assert PriorityResolver(rule_set.priority_matrix).resolve(urgency, impact) == expected

    def test_missing_entry_uses_default(self):
        resolver = PriorityResolver(PriorityMatrix(entries={(1, 1): 1}))

        assert resolver.resolve(4, 4) == Level.MEDIUM


class _Source(ConfigSource):
    """Config source that counts reads."""

    def __init__(self, value):
        self._value = value
        self.reads = 0

    def get(self):
        self.reads += 1
        return self._value
