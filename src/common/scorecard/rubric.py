"""Rubric (scorecard) models and invariant checks.

This module defines the weighted criteria an interaction is scored against
and the zero-tolerance (NCG) rules whose detection forces a score of zero.
The models are immutable snapshots: editing a scorecard is the caller's
concern, and the engine only reports imbalance, it never corrects weights.

Models:
    Criterion: One weighted line item of the scorecard.
    ZeroToleranceRule: One NCG rule (set membership, no weight).
    Rubric: Ordered criteria plus ordered zero-tolerance rules.

Functions:
    total_weight: Sum of all criterion weights.
    is_balanced: Whether the weights reach ``EXPECTED_TOTAL_WEIGHT``.
    group_by_category: Criteria grouped by category, first-seen order.
    check_balance: Build (and log) a RubricImbalanceWarning when unbalanced.
    default_rubric: The stock scorecard and NCG rules.

Example:
    >>> rubric = Rubric(criteria=[
    ...     Criterion(id="A", category="Opening", name="Greeting",
    ...               description="Greets the customer", weight=60),
    ...     Criterion(id="B", category="Closing", name="Farewell",
    ...               description="Closes politely", weight=40),
    ... ])
    >>> is_balanced(rubric)
    True
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from src.common.scorecard.errors import RubricImbalanceWarning


logger = logging.getLogger(__name__)


# Weight total a rubric must reach to be valid for scoring
EXPECTED_TOTAL_WEIGHT = 100


# =============================================================================
# Rubric Models
# =============================================================================


class Criterion(BaseModel):
    """One weighted line item of the scorecard.

    Attributes:
        id: Stable identifier, unique within a rubric.
        category: Grouping label (e.g. "1. Abertura").
        name: Display name.
        description: Instructions the oracle must follow for this item.
        weight: Points the item is worth.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Criterion identifier")
    category: str = Field(..., description="Grouping label")
    name: str = Field(..., description="Display name")
    description: str = Field(default="", description="Instructions for the oracle")
    weight: int = Field(..., ge=0, description="Points the criterion is worth")


class ZeroToleranceRule(BaseModel):
    """A condition that forces the total score to zero when detected."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str
    description: str = ""


class Rubric(BaseModel):
    """Immutable snapshot of a scorecard and its zero-tolerance rules.

    Attributes:
        criteria: Criteria in canonical order.
        zero_tolerance: Zero-tolerance (NCG) rules in canonical order.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    criteria: tuple[Criterion, ...] = Field(default_factory=tuple)
    zero_tolerance: tuple[ZeroToleranceRule, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "Rubric":
        """Ensure criterion ids are unique."""
        seen: set[str] = set()
        for criterion in self.criteria:
            if criterion.id in seen:
                raise ValueError(f"Duplicate criterion id: '{criterion.id}'")
            seen.add(criterion.id)
        return self

    @property
    def ids(self) -> list[str]:
        """Return criterion ids in canonical order."""
        return [c.id for c in self.criteria]

    def get(self, criterion_id: str) -> Criterion | None:
        """Look up a criterion by id.

        Args:
            criterion_id: The id to look up.

        Returns:
            The matching Criterion, or None if the rubric has no such id.
        """
        for criterion in self.criteria:
            if criterion.id == criterion_id:
                return criterion
        return None


# =============================================================================
# Invariant Checks
# =============================================================================


def total_weight(rubric: Rubric) -> int:
    """Return the sum of all criterion weights."""
    return sum(c.weight for c in rubric.criteria)


def is_balanced(rubric: Rubric) -> bool:
    """Return True if the rubric's weights sum to exactly 100.

    An empty rubric (total weight 0) is never balanced.
    """
    return total_weight(rubric) == EXPECTED_TOTAL_WEIGHT


def group_by_category(rubric: Rubric) -> dict[str, list[Criterion]]:
    """Group criteria by category.

    Category keys follow first-seen order in the rubric; criteria keep their
    original relative order inside each category.

    Args:
        rubric: The rubric to group.

    Returns:
        Mapping of category label to the criteria in that category.
    """
    groups: dict[str, list[Criterion]] = {}
    for criterion in rubric.criteria:
        groups.setdefault(criterion.category, []).append(criterion)
    return groups


def check_balance(rubric: Rubric) -> RubricImbalanceWarning | None:
    """Report an unbalanced rubric.

    Called whenever a rubric is loaded for evaluation or editing. The warning
    is logged and returned; it never blocks evaluation.

    Args:
        rubric: The rubric to check.

    Returns:
        A RubricImbalanceWarning if the weights do not sum to 100, else None.
    """
    weight = total_weight(rubric)
    if weight == EXPECTED_TOTAL_WEIGHT:
        return None

    warning = RubricImbalanceWarning(weight, EXPECTED_TOTAL_WEIGHT)
    logger.warning(
        "Rubric with %d criteria is unbalanced: weights sum to %d (expected %d)",
        len(rubric.criteria),
        weight,
        EXPECTED_TOTAL_WEIGHT,
    )
    return warning


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_SCORECARD: tuple[Criterion, ...] = (
    # 1. Abertura
    Criterion(id="1.1", category="1. Abertura", name="1.1 Script e Personalização",
              description="Iniciou em até 5s, seguiu script e personalizou.", weight=3),
    Criterion(id="1.2", category="1. Abertura", name="1.2 Receptividade",
              description="Abertura positiva e perguntou como gostaria de ser chamado.", weight=2),
    Criterion(id="1.3", category="1. Abertura", name="1.3 Proatividade",
              description="Perguntou como ajudar antes de pedir dados.", weight=2),
    Criterion(id="1.4", category="1. Abertura", name="1.4 Segurança LGPD",
              description="Confirmação de dados conforme script de segurança.", weight=3),
    Criterion(id="1.5", category="1. Abertura", name="1.5 Sondagem Sistêmica",
              description="Verificou histórico para evitar repetição.", weight=4),
    # 4. Diálogo
    Criterion(id="4.1", category="4. Diálogo", name="4.1 Empatia e Cordialidade",
              description="Demonstrou interesse genuíno, paciência e equilíbrio emocional durante o contato.",
              weight=7),
    Criterion(id="4.2", category="4. Diálogo", name="4.2 Personalização Contínua",
              description="Chamou o cliente pelo nome preferido durante o atendimento.", weight=3),
    Criterion(id="4.3", category="4. Diálogo", name="4.3 Concentração",
              description="Atenção ao relato sem pedir repetição desnecessária.", weight=4),
    Criterion(id="4.4", category="4. Diálogo", name="4.4 Norma Culta",
              description="Utilização correta da língua, sem gírias ou vícios de linguagem.", weight=3),
    # 5. Conhecimento
    Criterion(id="5.1", category="5. Conhecimento", name="5.1 Conhecimento Técnico",
              description="Demonstrou domínio pleno dos procedimentos e ferramentas.", weight=10),
    Criterion(id="5.2", category="5. Conhecimento", name="5.2 Resolutividade",
              description="Entregou a solução completa ou o próximo passo correto.", weight=10),
    # Sistema
    Criterion(id="BONUS", category="Sistema", name="Bônus Operacional",
              description="Pontuação automática de performance.", weight=46),
)

DEFAULT_NCG_RULES: tuple[ZeroToleranceRule, ...] = (
    ZeroToleranceRule(id="ncg1", name="Desligamento Indevido",
                      description="Cair a ligação propositalmente ou desligar sem motivo."),
    ZeroToleranceRule(id="ncg2", name="Conduta Inadequada",
                      description="Falta de respeito, deboche ou agressividade."),
    ZeroToleranceRule(id="ncg3", name="Erro de Procedimento Crítico",
                      description="Informação que gera risco de vida ou prejuízo financeiro grave."),
)


def default_rubric() -> Rubric:
    """Return the stock scorecard with the stock zero-tolerance rules.

    Note:
        The stock weights sum to 97, so ``check_balance`` flags it until the
        operation adjusts the weights.
    """
    return Rubric(criteria=DEFAULT_SCORECARD, zero_tolerance=DEFAULT_NCG_RULES)
