"""Outbound side: payload encoding, drafts and message assembly."""

from .assembler import (
    BuildCancelled,
    BuildFailed,
    BuildJob,
    BuildOutcome,
    BuildPendingAuthorization,
    BuildSuccess,
    MessageAssembler,
)
from .builder import Attachment, ComposedMessageBuilder, Identity, MessageFormat
from .composer import (
    HTML_AND_BODY_END,
    HTML_AND_BODY_START,
    STRUCTURED_PART_CONTENT_TYPE,
    SmlVariant,
    approve_deny_payload,
    canonical_json,
    compose,
)
from .session import ComposeSession, is_json_ld, subject_for

__all__ = [
    "HTML_AND_BODY_END",
    "HTML_AND_BODY_START",
    "STRUCTURED_PART_CONTENT_TYPE",
    "Attachment",
    "BuildCancelled",
    "BuildFailed",
    "BuildJob",
    "BuildOutcome",
    "BuildPendingAuthorization",
    "BuildSuccess",
    "ComposeSession",
    "ComposedMessageBuilder",
    "Identity",
    "MessageAssembler",
    "MessageFormat",
    "SmlVariant",
    "approve_deny_payload",
    "canonical_json",
    "compose",
    "is_json_ld",
    "subject_for",
]
