"""Free-form QA consultant grounded on the active scorecard.

Reviewers ask procedural or rubric questions; the consultant answers with
the current scorecard in its system prompt.
"""

from __future__ import annotations

import logging

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from src.common.scorecard.errors import OracleTransportError
from src.common.scorecard.rubric import Rubric


logger = logging.getLogger(__name__)


UNAVAILABLE_MESSAGE = "A consultoria de qualidade está indisponível no momento."

CONSULTANT_SYSTEM_TEMPLATE = """Você é a consultora sênior de qualidade da operação.
Seu objetivo é auxiliar analistas e monitores em dúvidas sobre procedimentos, regras do scorecard e melhores práticas de atendimento.
Contexto do scorecard atual:
{scorecard}

Responda de forma executiva, profissional e encorajadora."""


def format_scorecard_context(rubric: Rubric) -> str:
    """Render the rubric as ``- <name>: <description> (<weight>pts)`` lines."""
    return "\n".join(
        f"- {c.name}: {c.description} ({c.weight}pts)" for c in rubric.criteria
    )


class QualityConsultant:
    """Answers reviewer questions about the scorecard and procedures.

    Attributes:
        llm: Chat model used for answers.
    """

    def __init__(self, llm: BaseChatModel) -> None:
        self.llm = llm

    async def ask(self, question: str, rubric: Rubric) -> str:
        """Answer a question using the rubric as context.

        Returns:
            The model's answer, or UNAVAILABLE_MESSAGE when it is empty.

        Raises:
            OracleTransportError: If the model call fails.
        """
        messages = [
            SystemMessage(
                content=CONSULTANT_SYSTEM_TEMPLATE.format(
                    scorecard=format_scorecard_context(rubric)
                )
            ),
            HumanMessage(content=question),
        ]
        try:
            response = await self.llm.ainvoke(messages)
        except Exception as e:
            logger.error("Consultant call failed: %s", e, exc_info=True)
            raise OracleTransportError(f"Consultant call failed: {e}", original_error=e) from e

        content = response.content
        if isinstance(content, str):
            answer = content.strip()
        else:
            # Multi-part replies: keep the text parts only
            answer = "".join(
                part if isinstance(part, str) else part.get("text", "")
                for part in content
            ).strip()
        if not answer:
            logger.warning("Consultant returned an empty answer")
            return UNAVAILABLE_MESSAGE
        return answer
