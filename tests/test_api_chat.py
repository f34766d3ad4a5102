"""Tests for the assistant and its chat endpoint."""

import pytest

from colorvision_dashboard.assistant import (
    COLOR_BLINDNESS_REPLY,
    DEFAULT_REPLY,
    ERG_REPLY,
    FUNDUS_REPLY,
    SYSTEM_PROMPT,
    KeywordResponder,
    answer,
    build_messages,
    build_system_prompt,
)
from colorvision_dashboard.schemas.requests import AnalysisContext, ChatMessage


@pytest.mark.parametrize(
    "message,expected",
    [
        ("What does my ERG show?", ERG_REPLY),
        ("Explain the fundus photo", FUNDUS_REPLY),
        ("Am I color blind?", COLOR_BLINDNESS_REPLY),
        ("what is deuteranopia", COLOR_BLINDNESS_REPLY),
        ("Hello there", DEFAULT_REPLY),
    ],
)
def test_keyword_replies(message, expected):
    assert answer(message) == expected


def test_earlier_rules_win():
    assert answer("Does my ERG match the fundus image?") == ERG_REPLY


def test_explicit_responder():
    assert answer("fundus?", responder=KeywordResponder()) == FUNDUS_REPLY


def test_system_prompt_without_context():
    assert build_system_prompt([]) == SYSTEM_PROMPT


def test_system_prompt_summarises_analyses():
    context = [
        AnalysisContext(
            color_blindness_type="Protanopia",
            severity_level="Mild",
            combined_confidence=0.823,
            fundus_confidence=0.9,
            erg_confidence=0.7,
        )
    ]

    prompt = build_system_prompt(context)

    assert "Patient's Recent Analysis Results:" in prompt
    assert "- Color Blindness Type: Protanopia" in prompt
    assert "- Combined Confidence: 82.3%" in prompt
    assert "- ERG Confidence: 70.0%" in prompt


def test_messages_keep_history_order():
    history = [
        ChatMessage(role="user", content="hi"),
        ChatMessage(role="assistant", content="hello"),
    ]

    messages = build_messages("and now?", [], history)

    assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
    assert messages[-1]["content"] == "and now?"


class TestChatEndpoint:
    def test_chat_reply(self, client, auth_headers):
        response = client.post(
            "/api/chat",
            json={
                "message": "Tell me about ERG",
                "context": [{"color_blindness_type": "Normal", "severity_level": "None"}],
                "conversationHistory": [{"role": "user", "content": "hi"}],
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"message": ERG_REPLY}

    def test_message_is_required(self, client, auth_headers):
        response = client.post("/api/chat", json={"message": "   "}, headers=auth_headers)
        assert response.status_code == 400
