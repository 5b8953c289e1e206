"""Natural-language instruction processing (external model boundary)."""

from crumb.assistant.prompt import (
    PreviousProposal,
    build_prompt,
    extract_json,
    format_tree,
)
from crumb.assistant.processor import InstructionProcessor, InstructionResult

__all__ = [
    "PreviousProposal",
    "build_prompt",
    "extract_json",
    "format_tree",
    "InstructionProcessor",
    "InstructionResult",
]
