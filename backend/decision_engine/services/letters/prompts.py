"""Prompt construction for letter generation."""
from typing import List, Optional, Sequence

from ...models.generation import LLMMessage, MessageRole
from ...models.ssot import Jurisdiction, Tone

BASE_RULES = [
    "Be respectful, empathetic, and constructive",
    "NEVER mention protected characteristics (age, gender, race, disability, religion, etc.)",
    "NEVER speculate about personal attributes",
    "Focus ONLY on job-related qualifications",
    "Keep it concise (200-300 words)",
    "Use professional, warm tone",
    "Wish them well in their job search",
]

JURISDICTION_GUIDELINES = {
    Jurisdiction.US: "Follow EEOC guidance: reference only job-related, documented criteria.",
    Jurisdiction.EU: (
        "Comply with GDPR and EU employment law: do not reference personal data, "
        "health, or any special category data."
    ),
    Jurisdiction.CA: (
        "Comply with Canadian Human Rights legislation: reference only bona fide "
        "occupational requirements and avoid age proxies such as graduation recency."
    ),
}

TONE_GUIDELINES = {
    Tone.FORMAL: "Use a formal, businesslike register.",
    Tone.FRIENDLY: "Use a friendly, conversational register while staying professional.",
    Tone.EMPATHETIC: "Acknowledge the candidate's effort and keep the message warm and encouraging.",
}


def build_system_prompt(jurisdiction: Jurisdiction, tone: Tone) -> str:
    rules = "\n".join(f"{i}. {rule}" for i, rule in enumerate(BASE_RULES, 1))
    return (
        "You are a professional HR assistant generating respectful, empathetic rejection letters.\n\n"
        f"RULES:\n{rules}\n\n"
        f"Jurisdiction: {jurisdiction.value}\n"
        f"{JURISDICTION_GUIDELINES[jurisdiction]}\n"
        f"Tone: {tone.value}\n"
        f"{TONE_GUIDELINES[tone]}"
    )


def build_user_prompt(
    candidate_name: str,
    job_title: str,
    company_name: str,
    reasons: Sequence[str],
    custom_template: Optional[str] = None,
) -> str:
    numbered = "\n".join(f"{i}. {reason}" for i, reason in enumerate(reasons, 1))
    prompt = (
        "Generate a rejection letter for:\n\n"
        f"Candidate: {candidate_name}\n"
        f"Position: {job_title}\n"
        f"Company: {company_name}\n\n"
        f"Reasons (job-related only):\n{numbered}\n"
    )
    if custom_template:
        prompt += f"\nUse this template as a guide:\n{custom_template}\n"
    prompt += "\nGenerate a respectful rejection letter following the rules above."
    return prompt


def build_messages(
    jurisdiction: Jurisdiction,
    tone: Tone,
    candidate_name: str,
    job_title: str,
    company_name: str,
    reasons: Sequence[str],
    custom_template: Optional[str] = None,
) -> List[LLMMessage]:
    return [
        LLMMessage(MessageRole.SYSTEM, build_system_prompt(jurisdiction, tone)),
        LLMMessage(
            MessageRole.USER,
            build_user_prompt(candidate_name, job_title, company_name, reasons, custom_template),
        ),
    ]
