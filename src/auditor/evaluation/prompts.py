"""Prompt templates and rubric serialization for evaluation requests.

The serialized rubric is the oracle's only source of truth about what to
evaluate, so every criterion is always present, one per line, in rubric
order. When a size cap forces truncation, descriptions are trimmed from the
tail; ids, names and weights are never dropped.

Constants:
    EVALUATION_SYSTEM_TEMPLATE: System instructions with rubric placeholders.
    EVALUATION_USER_TEMPLATE: User prompt with metadata and transcript.
    TRUNCATED_TRANSCRIPT_NOTICE: Line appended to the prompt when the
        transcript was cut.

Functions:
    format_criterion_line: Serialize one criterion.
    serialize_rubric: Serialize all criteria, honoring a size cap.
    serialize_zero_tolerance: Serialize the NCG rules.
    truncate_transcript: Cut a transcript to a size cap.
    build_system_instructions: Render the system prompt.
    build_user_prompt: Render the user prompt.
"""

from __future__ import annotations

from src.common.scorecard.rubric import Criterion, Rubric, ZeroToleranceRule


# =============================================================================
# Templates
# =============================================================================

EVALUATION_SYSTEM_TEMPLATE = """### MOTOR DE AUDITORIA DE QUALIDADE ###
Você é uma auditora sênior e imparcial de atendimento. Avalie a interação
abaixo aplicando a ficha de monitoria (SCORECARD) e as regras de tolerância
zero (NCG).

### REGRAS OBRIGATÓRIAS
1. "criteriaScores": avalie individualmente CADA ID listado no SCORECARD,
   exatamente uma vez, usando o ID exato entre colchetes. Não invente IDs.
2. "status": use somente "CONFORME", "NÃO CONFORME" ou "FALHA GRAVE (NCG)".
3. "pointsEarned": inteiro entre 0 e o PESO do item.
4. "observation": para CADA item, escreva uma justificativa técnica
   citando o trecho ou o momento da interação que a sustenta.
5. Se qualquer NCG ocorrer, "isNcgDetected" deve ser true e "totalScore"
   deve ser 0 obrigatoriamente.
6. Caso contrário, "totalScore" é a soma dos "pointsEarned".

SCORECARD:
{scorecard}

NCGs:
{ncg_rules}

Responda EXCLUSIVAMENTE em JSON, no formato solicitado."""


EVALUATION_USER_TEMPLATE = """ANÁLISE PARA: {agent_name}
OPERAÇÃO: {operation}
MONITOR: {monitor_name}
DATA DA AUDITORIA: {audit_date}
RIGOR: {rigor}
TRANSCRIÇÃO:
{transcript}"""


NO_TRANSCRIPT_PLACEHOLDER = "(sem transcrição: avalie o áudio anexo)"
NO_NCG_PLACEHOLDER = "(nenhuma regra de tolerância zero cadastrada)"
TRUNCATED_TRANSCRIPT_NOTICE = "[transcrição truncada por limite de tamanho]"


# =============================================================================
# Serialization
# =============================================================================


def format_criterion_line(criterion: Criterion, include_description: bool = True) -> str:
    """Serialize one criterion to a single line.

    Args:
        criterion: The criterion to serialize.
        include_description: Whether to include the instructional text.

    Returns:
        A line of the form
        ``ID:[id] | CATEGORIA:cat | NOME:name | PESO:Npts | REGRA:text``.
    """
    description = _single_line(criterion.description) if include_description else ""
    return (
        f"ID:[{criterion.id}] | CATEGORIA:{_single_line(criterion.category)} | "
        f"NOME:{_single_line(criterion.name)} | PESO:{criterion.weight}pts | "
        f"REGRA:{description}"
    )


def serialize_rubric(rubric: Rubric, max_chars: int | None = None) -> tuple[str, bool]:
    """Serialize all criteria, trimming descriptions from the tail if needed.

    Args:
        rubric: The rubric to serialize.
        max_chars: Size cap for the serialized text; None disables the cap.

    Returns:
        Tuple of (serialized text, whether any description was trimmed).
        The text may still exceed the cap when the description-free lines
        alone are longer; criteria are never dropped.
    """
    criteria = list(rubric.criteria)
    with_description = [True] * len(criteria)

    def render() -> str:
        return "\n".join(
            format_criterion_line(c, keep) for c, keep in zip(criteria, with_description)
        )

    text = render()
    if max_chars is None or len(text) <= max_chars:
        return text, False

    for index in range(len(criteria) - 1, -1, -1):
        with_description[index] = False
        text = render()
        if len(text) <= max_chars:
            break

    return text, True


def serialize_zero_tolerance(rules: tuple[ZeroToleranceRule, ...] | list[ZeroToleranceRule]) -> str:
    """Serialize zero-tolerance rules, one ``- name: description`` per line."""
    if not rules:
        return NO_NCG_PLACEHOLDER
    return "\n".join(
        f"- {_single_line(r.name)}: {_single_line(r.description)}" for r in rules
    )


def truncate_transcript(transcript: str, max_chars: int | None) -> tuple[str, bool]:
    """Keep the head of a transcript, cutting the tail past ``max_chars``.

    Returns:
        Tuple of (possibly truncated transcript, whether it was truncated).
    """
    if max_chars is None or len(transcript) <= max_chars:
        return transcript, False
    return transcript[:max_chars], True


# =============================================================================
# Prompt Rendering
# =============================================================================


def build_system_instructions(scorecard_text: str, ncg_text: str) -> str:
    """Render the system instructions for an evaluation."""
    return EVALUATION_SYSTEM_TEMPLATE.format(scorecard=scorecard_text, ncg_rules=ncg_text)


def build_user_prompt(
    transcript: str,
    agent_name: str,
    operation: str,
    monitor_name: str,
    audit_date: str,
    rigor: str,
    transcript_truncated: bool = False,
) -> str:
    """Render the user prompt carrying metadata and the transcript."""
    body = transcript if transcript.strip() else NO_TRANSCRIPT_PLACEHOLDER
    if transcript_truncated:
        body = f"{body}\n{TRUNCATED_TRANSCRIPT_NOTICE}"
    return EVALUATION_USER_TEMPLATE.format(
        agent_name=agent_name,
        operation=operation,
        monitor_name=monitor_name or "-",
        audit_date=audit_date,
        rigor=rigor,
        transcript=body,
    )


def _single_line(text: str) -> str:
    # Newlines inside a field would break the one-line-per-criterion layout
    return " ".join(text.split())
