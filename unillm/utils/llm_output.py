"""
unillm - Model Output Helpers

Helpers for complete (non-streamed) model output:
- Separating a <think>/<thinking> block from the final answer
- Extracting a JSON object from free-form model output
"""

import json
from typing import Any, Optional, Tuple

from ..observability.logging import get_logger


logger = get_logger(__name__)

THINK_TAG_PAIRS = (
    ("<think>", "</think>"),
    ("<thinking>", "</thinking>"),
)


def split_think_chain(text: str) -> Tuple[str, str]:
    """
    Split model output into (reasoning, answer).

    The first tag pair that occurs complete (start tag followed by its end
    tag) wins. Reasoning is the stripped text between the tags; the answer
    is the stripped text before and after the block joined by one space.
    Text without a complete pair is returned unchanged as the answer.

        >>> split_think_chain("<think>x</think> y")
        ('x', 'y')
    """
    for start_tag, end_tag in THINK_TAG_PAIRS:
        start = text.find(start_tag)
        if start == -1:
            continue

        end = text.find(end_tag, start + len(start_tag))
        if end == -1:
            continue

        reasoning = text[start + len(start_tag):end].strip()
        before = text[:start].strip()
        after = text[end + len(end_tag):].strip()
        return reasoning, f"{before} {after}".strip()

    return "", text


def extract_think_chain(text: str) -> str:
    """Chain of thought of the output, or ``""`` when there is none."""
    return split_think_chain(text)[0]


def extract_answer(text: str) -> str:
    """Output with the chain-of-thought block removed."""
    return split_think_chain(text)[1]


def extract_json_from_llm_output(output: str) -> Optional[Any]:
    """
    Parse JSON from model output.

    Tries the whole output first (after dropping a leading think block),
    then the content of a fenced json code block. Returns ``None`` when
    neither parses.
    """
    if output.strip().startswith("<think"):
        output = extract_answer(output)

    try:
        return json.loads(output)
    except json.JSONDecodeError:
        pass

    fence = "```json"
    json_start = output.find(fence)
    json_end = output.rfind("```")
    if json_start == -1 or json_end <= json_start:
        logger.warning("Model output is not in the expected format", output_length=len(output))
        return None

    try:
        return json.loads(output[json_start + len(fence):json_end])
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse JSON block from model output", error=str(e))
        return None
