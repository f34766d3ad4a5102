"""
Patient-facing assistant.

Replies are keyword-matched explanations. The system prompt that a language
model would receive is still assembled from the caller's recent analyses so
that a real model can replace ``KeywordResponder`` without touching the route.
"""

from typing import Dict, List, Optional, Sequence

import structlog

from .schemas.requests import AnalysisContext, ChatMessage

logger = structlog.get_logger()

SYSTEM_PROMPT = """You are a medical AI assistant specializing in color blindness detection and retinal analysis. You help patients understand their ERG (Electroretinography) results, fundus image analysis, and multimodal AI predictions.

Key responsibilities:
- Explain ERG parameters (a-wave, b-wave, implicit time, photopic/scotopic responses)
- Interpret fundus image findings (optic disc, macula, vessel analysis)
- Clarify color blindness types (Normal, Protanopia, Deuteranopia, Tritanopia)
- Provide confidence score explanations
- Use simple, patient-friendly language
- Always recommend consulting with an ophthalmologist for medical decisions

Guidelines:
- Be empathetic and supportive
- Explain medical terms clearly
- Focus on education, not diagnosis
- Encourage professional medical consultation"""

ERG_REPLY = (
    "ERG (Electroretinography) measures the electrical responses of your retina. "
    "The a-wave represents photoreceptor activity, while the b-wave shows bipolar "
    "cell responses. Your ERG results help us understand how well your cone and rod "
    "cells are functioning, which is crucial for color vision assessment."
)

FUNDUS_REPLY = (
    "Fundus photography captures detailed images of your retina, including the optic "
    "disc, macula, and blood vessels. Our AI analyzes color distribution patterns and "
    "structural features that can indicate color vision deficiencies. The combination "
    "with ERG data provides a comprehensive assessment."
)

COLOR_BLINDNESS_REPLY = (
    "Color blindness affects how you perceive certain colors. Protanopia affects red "
    "perception, deuteranopia affects green perception, and tritanopia affects blue "
    "perception. Our multimodal analysis combines fundus imaging and ERG data to "
    "provide accurate diagnosis and severity assessment."
)

DEFAULT_REPLY = (
    "I can help explain your medical results, ERG data interpretation, fundus image "
    "analysis, and color blindness conditions. Please feel free to ask specific "
    "questions about your test results or any medical terms you'd like clarified."
)

# Checked in order; the first rule with a matching keyword wins.
KEYWORD_RULES = (
    (("erg",), ERG_REPLY),
    (("fundus",), FUNDUS_REPLY),
    (("color blind", "protanopia", "deuteranopia"), COLOR_BLINDNESS_REPLY),
)


def _percent(value) -> str:
    return "n/a" if value is None else f"{value * 100:.1f}%"


def build_system_prompt(context: Sequence[AnalysisContext]) -> str:
    """Base prompt plus a summary of each analysis in ``context``."""
    prompt = SYSTEM_PROMPT
    if not context:
        return prompt

    prompt += "\n\nPatient's Recent Analysis Results:\n"
    for index, analysis in enumerate(context, start=1):
        prompt += (
            f"Analysis {index}:\n"
            f"- Color Blindness Type: {analysis.color_blindness_type}\n"
            f"- Severity: {analysis.severity_level}\n"
            f"- Combined Confidence: {_percent(analysis.combined_confidence)}\n"
            f"- Fundus Confidence: {_percent(analysis.fundus_confidence)}\n"
            f"- ERG Confidence: {_percent(analysis.erg_confidence)}\n"
        )
    return prompt


def build_messages(
    message: str,
    context: Sequence[AnalysisContext],
    history: Sequence[ChatMessage],
) -> List[Dict[str, str]]:
    """Conversation in chat-completion order: system, history, then the new message."""
    messages = [{"role": "system", "content": build_system_prompt(context)}]
    messages.extend({"role": m.role, "content": m.content} for m in history)
    messages.append({"role": "user", "content": message})
    return messages


class KeywordResponder:
    """Rule-based stand-in for a chat model."""

    def reply(self, messages: Sequence[Dict[str, str]]) -> str:
        text = messages[-1]["content"].lower() if messages else ""
        for keywords, reply in KEYWORD_RULES:
            if any(keyword in text for keyword in keywords):
                return reply
        return DEFAULT_REPLY


def answer(
    message: str,
    context: Sequence[AnalysisContext] = (),
    history: Sequence[ChatMessage] = (),
    responder: Optional[KeywordResponder] = None,
) -> str:
    """Produce the assistant's reply to ``message``."""
    messages = build_messages(message, context, history)
    logger.debug(
        "assistant_prompt_built",
        context_count=len(context),
        history_count=len(history),
        system_prompt=messages[0]["content"],
    )
    return (responder or KeywordResponder()).reply(messages)
