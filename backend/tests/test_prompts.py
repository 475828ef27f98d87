"""Prompt construction for letter generation."""
from decision_engine.models.generation import MessageRole
from decision_engine.models.ssot import Jurisdiction, Tone
from decision_engine.services.letters import build_messages, build_system_prompt, build_user_prompt


class TestPrompts:

    def test_system_prompt_carries_rules(self):
        prompt = build_system_prompt(Jurisdiction.EU, Tone.FORMAL)
        assert "NEVER mention protected characteristics" in prompt
        assert "GDPR" in prompt
        assert "Tone: formal" in prompt

    def test_user_prompt_numbers_reasons(self):
        prompt = build_user_prompt("Sam", "Backend Engineer", "Acme", ["First", "Second"])
        assert "1. First\n2. Second" in prompt
        assert "Position: Backend Engineer" in prompt
        assert "template" not in prompt

    def test_custom_template_included(self):
        prompt = build_user_prompt("Sam", "Engineer", "Acme", ["Gap"], custom_template="Dear {{candidateName}}")
        assert "Use this template as a guide:\nDear {{candidateName}}" in prompt

    def test_messages(self):
        messages = build_messages(Jurisdiction.US, Tone.EMPATHETIC, "Sam", "Engineer", "Acme", ["Gap"])
        assert [m.role for m in messages] == [MessageRole.SYSTEM, MessageRole.USER]
        assert "EEOC" in messages[0].content
