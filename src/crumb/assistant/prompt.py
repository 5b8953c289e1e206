"""
Prompt construction and response extraction for the instruction processor.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from crumb.tasks.constants import TaskStatus
from crumb.tasks.operations import TaskOperation
from crumb.tasks.tree import TaskForest


TREE_ICONS = {
    TaskStatus.TODO: "☐",
    TaskStatus.DONE: "☑",
}

EMPTY_TREE_TEXT = "(no tasks)"


INSTRUCTION_PROMPT_TEMPLATE = '''You are a task management assistant.
You receive the current task tree and an instruction from the user, and return the list of operations to apply, as JSON.

## About the input:
The instruction may come from voice input (a transcription). Keep in mind:
- Infer and correct misrecognized words and typos from context
- Understand the intent even without punctuation or with conversational phrasing
- Watch for homophones that were transcribed as the wrong word
- Use the corrected spelling when generating task titles

## Current task tree:
{tree}
{previous_context}
## User instruction:
{instruction}

## Operation format:
The following operations are available. Return them as a JSON array.

- Add a task: {{ "op": "add", "id": "temp_1", "title": "Task title", "parentId": "parent task ID or null" }}
- Delete a task: {{ "op": "delete", "taskId": "task ID" }}
- Move a task: {{ "op": "move", "taskId": "task ID", "newParentId": "new parent ID or null" }}
- Rename a task: {{ "op": "update", "taskId": "task ID", "title": "New title" }}
- Complete a task: {{ "op": "done", "taskId": "task ID" }}

## Important rules:
- When referring to an existing task, use the actual ID shown in the tree (the text inside [...]).
- When adding a new task, assign a temporary ID ("temp_1", "temp_2", ...) in the "id" field.
- When adding children of a task added in the same response, set parentId to the parent's temporary ID (e.g. "temp_1").
- Put a parent's add before the adds of its children.

## Response format:
Respond with this JSON only. No explanation.

{{ "operations": [ ... ] }}'''


PREVIOUS_PROPOSAL_TEMPLATE = '''
## Previous proposal (needs revision):
The user's previous instruction: "{instruction}"
Your previous proposal:
{operations}

The user wants changes to this proposal. Follow the revision instruction below and return a new, improved list of operations.
'''


@dataclass
class PreviousProposal:
    """An earlier instruction and the operations proposed for it."""

    instruction: str
    operations: list[TaskOperation] = field(default_factory=list)


def format_tree(forest: TaskForest) -> str:
    """Render the forest as an indented listing with ids and status."""
    lines = [
        f"{'  ' * depth}[{task.id}] {TREE_ICONS[task.status]} {task.title}"
        for task, depth in forest.walk()
    ]
    return "\n".join(lines) if lines else EMPTY_TREE_TEXT


def build_prompt(
    instruction: str,
    forest: TaskForest,
    previous: Optional[PreviousProposal] = None,
) -> str:
    """Build the full prompt for one instruction."""
    previous_context = ""
    if previous is not None:
        previous_context = PREVIOUS_PROPOSAL_TEMPLATE.format(
            instruction=previous.instruction,
            operations=json.dumps(
                {"operations": [op.to_wire() for op in previous.operations]},
                indent=2,
                ensure_ascii=False,
            ),
        )

    return INSTRUCTION_PROMPT_TEMPLATE.format(
        tree=format_tree(forest),
        previous_context=previous_context,
        instruction=instruction,
    )


_CODE_BLOCK_RE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```")
_JSON_SPAN_RE = re.compile(r"(\[[\s\S]*\]|\{[\s\S]*\})")


def extract_json(text: str) -> Any:
    """
    Pull a JSON value out of free-form model output.

    Tries a fenced code block first, then the widest bracket or brace
    span, then the raw text.

    Raises:
        json.JSONDecodeError: If nothing parses
    """
    block = _CODE_BLOCK_RE.search(text)
    if block:
        return json.loads(block.group(1).strip())

    span = _JSON_SPAN_RE.search(text)
    if span:
        return json.loads(span.group(1))

    return json.loads(text)
