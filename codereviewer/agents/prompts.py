"""
Prompt construction for reviews and chat
"""

import json
from typing import Any, Optional, Sequence

from codereviewer.models.review_models import ChatMessage, ReviewContext

REVIEWER_PERSONA = 'You are "codereviewer.ai", an expert senior developer.'

CHAT_PERSONA = (
    "You are codereviewer.ai, an expert developer assistant. "
    "Help with code-related questions."
)

DEEP_CRITERIA = """1. Identify bugs or security flaws.
2. Suggest performance optimizations.
3. Check for best practices and readability."""

QUICK_CRITERIA = """1. Identify bugs that will break at runtime.
2. Identify security flaws.
Skip style and readability remarks unless they hide a bug."""

RESPONSE_FORMAT = """You MUST respond ONLY with a valid JSON object. Do not include markdown formatting or prose.
{
  "summary": "Brief overall thought",
  "score": 1-10,
  "issues": [{"line": number, "type": "bug|style|security", "msg": "description", "fix": "suggested code"}],
  "optimizations": ["list of tips"]
}"""


def _context_json(prior_context: Any) -> str:
    if prior_context is None:
        return json.dumps("None")
    if isinstance(prior_context, ReviewContext):
        prior_context = prior_context.to_prompt_data()
    return json.dumps(prior_context, default=str)


def build_review_prompt(
    code: str,
    file_path: str,
    prior_context: Optional[Any] = None,
    depth: str = "deep",
) -> str:
    """Build the review prompt asking for a bare StructuredReview JSON object"""
    criteria = QUICK_CRITERIA if depth == "quick" else DEEP_CRITERIA
    return f"""{REVIEWER_PERSONA}
Review the following code for file: {file_path}

CRITERIA:
{criteria}

CONTEXT FROM PREVIOUS REVIEWS:
{_context_json(prior_context)}

CODE TO REVIEW:
```
{code}
```

RESPONSE FORMAT:
{RESPONSE_FORMAT}
"""


def build_chat_prompt(message: str, history: Sequence[ChatMessage]) -> str:
    """Flatten a conversation into one text blob ending with an assistant cue"""
    lines = [CHAT_PERSONA, ""]
    for msg in history:
        lines.append(f"{msg.role}: {msg.content}")
    lines.append(f"user: {message}")
    lines.append("assistant:")
    return "\n".join(lines)
