"""
Humane Decision Engine - Receipts API Router

Receipt verification. The signature check alone proves the hash was issued by
this service; passing the letter, reasons and template version as well also
proves the card and decision content still match that hash.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..dependencies import get_card_generator
from ..exceptions import ValidationError
from ..models.ssot import ExplainableReceipt
from ..services.letters import ExplainableCardGenerator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/receipts", tags=["receipts"])


class VerifyReceiptRequest(BaseModel):
    hash: str
    signature: str
    card: Dict[str, Any]
    letter: Optional[str] = None
    reasons: Optional[List[str]] = None
    template_version: Optional[str] = None


@router.post("/verify")
async def verify_receipt(
    body: VerifyReceiptRequest,
    generator: ExplainableCardGenerator = Depends(get_card_generator),
):
    try:
        receipt = ExplainableReceipt.from_dict({
            "hash": body.hash,
            "signature": body.signature,
            "card": body.card,
        })
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Malformed receipt card: {e}", field="card")

    signature_valid = generator.verify_receipt(receipt)
    contents_valid = None
    if body.letter is not None and body.reasons is not None:
        contents_valid = generator.verify_receipt_contents(
            receipt, body.letter, body.reasons, body.template_version
        )

    logger.info(
        f"Receipt verification for decision {receipt.card.decision_id}: "
        f"signature={signature_valid}, contents={contents_valid}"
    )
    return {
        "decision_id": receipt.card.decision_id,
        "signature_valid": signature_valid,
        "contents_valid": contents_valid,
    }
