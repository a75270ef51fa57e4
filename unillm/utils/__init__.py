"""
unillm Utilities
"""

from .llm_output import (
    split_think_chain,
    extract_think_chain,
    extract_answer,
    extract_json_from_llm_output,
)

__all__ = [
    "split_think_chain",
    "extract_think_chain",
    "extract_answer",
    "extract_json_from_llm_output",
]
