"""Utilities for chat-apply."""

from chat_apply.utils.diff_generator import diff_for_state, generate_unified_diff
from chat_apply.utils.git_apply import GitPatchApplier

__all__ = [
    "GitPatchApplier",
    "diff_for_state",
    "generate_unified_diff",
]
