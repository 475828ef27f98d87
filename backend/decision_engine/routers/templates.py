"""
Humane Decision Engine - Templates API Router

Template linting and ad-hoc bias checks. Both are pure computations.
"""
from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from ..models.ssot import Jurisdiction, TemplateContext
from ..services.ethics import check_bias
from ..services.policy import lint_template

router = APIRouter(prefix="/templates", tags=["templates"])


class LintRequest(BaseModel):
    template: str
    locale: str = "en-US"
    jurisdiction: Jurisdiction = Jurisdiction.US
    required_placeholders: Optional[List[str]] = None
    rubric_fields: Optional[List[str]] = None
    max_tokens: Optional[int] = None
    max_length: Optional[int] = None


class BiasCheckRequest(BaseModel):
    text: str
    jurisdiction: Jurisdiction = Jurisdiction.US


@router.post("/lint")
async def lint(body: LintRequest):
    context = TemplateContext(
        locale=body.locale,
        jurisdiction=body.jurisdiction.value,
        required_placeholders=body.required_placeholders,
        rubric_fields=body.rubric_fields,
        max_tokens=body.max_tokens,
        max_length=body.max_length,
    )
    return lint_template(body.template, context).to_dict()


@router.post("/bias-check")
async def bias_check(body: BiasCheckRequest):
    return check_bias(body.text, body.jurisdiction).to_dict()
