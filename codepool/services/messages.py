"""Turn an assignment result into the DM text sent to the claimant."""

import re

from codepool.config import settings
from codepool.schemas.assignment import AssignmentResult

CODE_PLACEHOLDER = re.compile(r"\{\{\s*CODE\s*\}\}", re.IGNORECASE)


def render_discount_message(
    result: AssignmentResult,
    message_template: str,
    fallback_message: str | None = None,
) -> str:
    """
    Fill every {{CODE}} placeholder with the assigned code, or return the
    fallback message when no code was issued.

    Unlike a single exact replace of "{{CODE}}", every occurrence is filled
    and the match ignores case and inner spaces, so "{{ code }}" works too.
    """
    if result.fallback or result.code is None:
        return fallback_message or settings.default_fallback_message
    return CODE_PLACEHOLDER.sub(lambda _: result.code, message_template)
