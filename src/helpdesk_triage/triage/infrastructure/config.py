"""
Triage Rule Loading
===================

Parses the triage rules YAML file into an immutable ``TriageRuleSet``.

File layout::

    dimensions:
      urgency:
        default: {id: 3, label: MEDIUM}
        normalizer: 2
        classes:            # tie-break order, most severe first
          - {id: 1, label: CRITICAL, weight: 4, keywords: [urgente, ...]}
    priority_matrix:
      default: 3
      table:                # urgency -> impact -> priority
        1: {1: 1, 2: 1, 3: 2, 4: 3}

A dimension that is missing or has no classes falls back to its default
class. A file with no keyword rules at all is rejected.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from helpdesk_triage.config import Dimension, Level
from helpdesk_triage.core import ConfigurationException
from helpdesk_triage.shared.infrastructure.config_source import (
    ConfigSource,
    StaticConfigSource,
    WatchedConfigSource,
    read_yaml,
)
from helpdesk_triage.shared.infrastructure.logging import get_logger
from helpdesk_triage.triage.domain import (
    ClassRule,
    DimensionRules,
    PriorityMatrix,
    TriageRuleSet,
)

logger = get_logger(__name__)


class DefaultClassModel(BaseModel):
    id: int
    label: str


# Used when a dimension is absent from the file
DIMENSION_DEFAULTS: Dict[Dimension, tuple[DefaultClassModel, int]] = {
    Dimension.TYPE: (DefaultClassModel(id=3, label="CONSULTA"), 3),
    Dimension.CATEGORY: (DefaultClassModel(id=10, label="CONSULTA"), 3),
    Dimension.URGENCY: (DefaultClassModel(id=3, label="MEDIUM"), 2),
    Dimension.IMPACT: (DefaultClassModel(id=3, label="MEDIUM"), 2),
}


class ClassRuleModel(BaseModel):
    """One weighted keyword class."""
    id: int
    label: str = Field(min_length=1)
    weight: int = Field(default=1, ge=1)
    keywords: List[str] = Field(default_factory=list)

    @field_validator("keywords")
    @classmethod
    def strip_keywords(cls, v: List[str]) -> List[str]:
        return [keyword.strip() for keyword in v if keyword and keyword.strip()]


class DimensionModel(BaseModel):
    """Rule table of one dimension."""
    default: DefaultClassModel
    normalizer: int = Field(ge=1)
    classes: List[ClassRuleModel] = Field(default_factory=list)

    @field_validator("classes")
    @classmethod
    def unique_ids(cls, v: List[ClassRuleModel]) -> List[ClassRuleModel]:
        ids = [rule.id for rule in v]
        if len(ids) != len(set(ids)):
            raise ValueError("class ids must be unique within a dimension")
        return v


class PriorityMatrixModel(BaseModel):
    """Urgency x impact -> priority table."""
    default: int = Field(default=int(Level.MEDIUM), ge=1, le=4)
    table: Dict[int, Dict[int, int]] = Field(default_factory=dict)

    @field_validator("table")
    @classmethod
    def validate_levels(cls, v: Dict[int, Dict[int, int]]) -> Dict[int, Dict[int, int]]:
        valid = {level.value for level in Level}
        for urgency, row in v.items():
            if urgency not in valid:
                raise ValueError(f"unknown urgency level {urgency}")
            for impact, priority in row.items():
                if impact not in valid or priority not in valid:
                    raise ValueError(
                        f"invalid priority matrix entry {urgency}/{impact} -> {priority}"
                    )
        return v


class TriageRulesFile(BaseModel):
    """Schema of the triage rules file."""
    dimensions: Dict[Dimension, DimensionModel] = Field(default_factory=dict)
    priority_matrix: PriorityMatrixModel = Field(default_factory=PriorityMatrixModel)


def _dimension_rules(dimension: Dimension, model: Optional[DimensionModel]) -> DimensionRules:
    if model is None:
        logger.warning(
            "No rules configured for dimension, classifier will return its default",
            extra={"dimension": dimension.value}
        )
        default, normalizer = DIMENSION_DEFAULTS[dimension]
        return DimensionRules(
            dimension=dimension,
            default_id=default.id,
            default_label=default.label,
            normalizer=normalizer,
        )

    return DimensionRules(
        dimension=dimension,
        default_id=model.default.id,
        default_label=model.default.label,
        normalizer=model.normalizer,
        classes=tuple(
            ClassRule(
                id=rule.id,
                label=rule.label,
                weight=rule.weight,
                keywords=tuple(rule.keywords),
            )
            for rule in model.classes
        ),
    )


def build_rule_set(data: Dict[str, Any]) -> TriageRuleSet:
    """
    Build a rule set from parsed YAML.

    Raises:
        ConfigurationException: If no dimension defines any keyword
    """
    parsed = TriageRulesFile(**data)

    rules = {
        dimension: _dimension_rules(dimension, parsed.dimensions.get(dimension))
        for dimension in Dimension
    }
    if not any(rule.keywords for r in rules.values() for rule in r.classes):
        raise ConfigurationException("Triage rules define no keywords")

    matrix = PriorityMatrix(
        entries={
            (urgency, impact): priority
            for urgency, row in parsed.priority_matrix.table.items()
            for impact, priority in row.items()
        },
        default=Level(parsed.priority_matrix.default),
    )
    missing = matrix.missing()
    if missing:
        logger.warning(
            "Priority matrix is incomplete, missing pairs use the default",
            extra={"missing": [f"{u}/{i}" for u, i in missing]}
        )

    return TriageRuleSet(
        type=rules[Dimension.TYPE],
        category=rules[Dimension.CATEGORY],
        urgency=rules[Dimension.URGENCY],
        impact=rules[Dimension.IMPACT],
        priority_matrix=matrix,
    )


def load_rule_set(path: Path) -> TriageRuleSet:
    """Load and validate a triage rules file once."""
    try:
        return build_rule_set(read_yaml(path))
    except ValueError as e:
        raise ConfigurationException(
            f"Invalid triage rules in {path}: {e}",
            {"path": str(path)}
        ) from e


def triage_rules_source(path: Path, watch: bool = False) -> ConfigSource[TriageRuleSet]:
    """Static source, or a watched one that reloads on file changes."""
    if not watch:
        return StaticConfigSource(load_rule_set(path))
    source = WatchedConfigSource(path, build_rule_set)
    source.start_watching()
    return source
