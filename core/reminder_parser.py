"""
Validation of AI-parsed reminder candidates.

The text-to-structure collaborator returns {anchorTitle, offsetMinutes,
message, why}. The only contract checked here: the title must name a known
anchor, otherwise the user gets an error naming the title they used.
"""
from typing import Any, Dict, Iterable, List, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from core.exceptions import InvalidCandidateError, UnknownAnchorError
from core.logger import get_logger
from core.models import Anchor, ReminderStatus, SmartReminder
from core.utils import parse_llm_json

logger = get_logger("reminder_parser")


class ReminderCandidate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    anchor_title: str = Field(alias="anchorTitle")
    offset_minutes: int = Field(alias="offsetMinutes")
    message: str
    why: str = ""


def known_anchor_titles(anchors: Iterable[Anchor]) -> List[str]:
    seen = []
    for anchor in anchors:
        if anchor.title not in seen:
            seen.append(anchor.title)
    return seen


def validate_candidate(
    candidate: Union[ReminderCandidate, Dict[str, Any], str],
    anchors: Iterable[Anchor],
) -> ReminderCandidate:
    """
    Accept raw collaborator output (JSON text, dict or model) and check the anchor title.

    Raises:
        InvalidCandidateError: output is not a well-formed candidate
        UnknownAnchorError: anchorTitle is not among the known anchors
    """
    if isinstance(candidate, str):
        parsed = parse_llm_json(candidate)
        if parsed is None:
            raise InvalidCandidateError()
        candidate = parsed

    if not isinstance(candidate, ReminderCandidate):
        try:
            candidate = ReminderCandidate.model_validate(candidate)
        except PydanticValidationError as e:
            logger.warning("Rejected reminder candidate: %s", e.errors())
            raise InvalidCandidateError() from e

    titles = known_anchor_titles(anchors)
    if candidate.anchor_title not in titles:
        raise UnknownAnchorError(candidate.anchor_title, titles)
    return candidate


def build_reminder(
    candidate: ReminderCandidate,
    anchors: Iterable[Anchor],
    reminder_id: Optional[str] = None,
) -> SmartReminder:
    """Link a validated candidate to the first anchor carrying its title."""
    anchor_list = list(anchors)
    anchor = next((a for a in anchor_list if a.title == candidate.anchor_title), None)
    if anchor is None:
        raise UnknownAnchorError(candidate.anchor_title, known_anchor_titles(anchor_list))

    return SmartReminder(
        id=reminder_id or f"sr_{uuid4().hex[:12]}",
        anchor_id=anchor.id,
        offset_minutes=candidate.offset_minutes,
        message=candidate.message,
        why=candidate.why or "Because you asked to be reminded.",
        status=ReminderStatus.ACTIVE,
    )
