"""Request validation, applied before any unit of work opens."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING
from uuid import UUID

from crowdpoi.domain.errors import ValidationError
from crowdpoi.domain.model import ProposalStatus, VoteType, is_empty, lookup_field
from crowdpoi.domain.statements import is_local_name

if TYPE_CHECKING:
    from crowdpoi.domain.model import FieldValue

MAX_USER_ID_LENGTH = 100
MAX_TARGET_ID_LENGTH = 255
MAX_COMMENT_LENGTH = 2000

_SCALAR_TYPES = (str, bool, int, float)


def validate_user_id(user_id: object) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("A user identifier is required")
    cleaned = user_id.strip()
    if len(cleaned) > MAX_USER_ID_LENGTH:
        raise ValidationError(f"User identifier longer than {MAX_USER_ID_LENGTH} characters")
    return cleaned


def validate_target_id(target_id: object) -> str:
    if not isinstance(target_id, str) or not target_id.strip():
        raise ValidationError("targetId is required")
    cleaned = target_id.strip()
    if len(cleaned) > MAX_TARGET_ID_LENGTH or not is_local_name(cleaned):
        raise ValidationError(f"Malformed targetId: {target_id!r}")
    return cleaned


def validate_fields(fields: object) -> dict[str, FieldValue | None]:
    """Check the proposed field mapping.

    Vocabulary fields must carry a value of their declared kind (or be empty).
    Unknown names are accepted as long as their value is a scalar.
    """

    if not isinstance(fields, Mapping):
        raise ValidationError("fields must be a mapping of field names to values")

    checked: dict[str, FieldValue | None] = {}
    for name, value in fields.items():
        if not isinstance(name, str) or not name:
            raise ValidationError(f"Malformed field name: {name!r}")
        if value is None or is_empty(value):
            checked[name] = None
            continue
        if not isinstance(value, _SCALAR_TYPES):
            raise ValidationError(f"Field {name!r} must be a scalar value")
        spec = lookup_field(name)
        if spec is not None and not spec.accepts(value):
            expected = spec.kind.value
            if spec.choices:
                expected = f"one of {', '.join(sorted(spec.choices))}"
            raise ValidationError(f"Field {name!r} expects {expected}, got {value!r}")
        checked[name] = value

    if all(value is None for value in checked.values()):
        raise ValidationError("At least one non-empty field is required")
    return checked


def parse_vote_type(vote_type: object) -> VoteType:
    try:
        return VoteType(str(vote_type))
    except ValueError as exc:
        raise ValidationError(f"voteType must be 'up' or 'down', got {vote_type!r}") from exc


def parse_status(status: object | None) -> ProposalStatus | None:
    if status is None:
        return None
    try:
        return ProposalStatus(str(status))
    except ValueError as exc:
        raise ValidationError(f"Unknown proposal status: {status!r}") from exc


def parse_proposal_id(proposal_id: object) -> UUID:
    if isinstance(proposal_id, UUID):
        return proposal_id
    try:
        return UUID(str(proposal_id))
    except ValueError as exc:
        raise ValidationError(f"Malformed proposal id: {proposal_id!r}") from exc


def validate_comment(comment: str | None) -> str | None:
    if comment is None or not comment.strip():
        return None
    if len(comment) > MAX_COMMENT_LENGTH:
        raise ValidationError(f"Comment longer than {MAX_COMMENT_LENGTH} characters")
    return comment.strip()


def validate_page(page: int, limit: int, *, max_limit: int) -> tuple[int, int]:
    if page < 1:
        raise ValidationError("page must be at least 1")
    if not 1 <= limit <= max_limit:
        raise ValidationError(f"limit must be between 1 and {max_limit}")
    return page, limit
