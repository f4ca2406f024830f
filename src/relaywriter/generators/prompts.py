"""Continuation prompts sent to the different backend families.

Every prompt carries the whole document, not just the previous turn.
"""

from typing import Dict, List

CONTINUE_INSTRUCTION = (
    "Your task is to continue the following piece of writing. You must only "
    "output the added content, and must not include this input prompt in the "
    "output. Do not repeat any existing text - only add new content to continue."
)


def chat_messages(document: str, system_prompt: str) -> List[Dict[str, str]]:
    return [
        {
            "role": "system",
            "content": (
                f'{system_prompt} The content so far: "{document}". '
                "Continue this content."
            ),
        },
        {"role": "user", "content": f"Continue this from where it left off: {document}"},
    ]


def perplexity_messages(
    document: str, system_prompt: str, output_budget: int
) -> List[Dict[str, str]]:
    # Perplexity tends to restate the input unless the budget is spelled out.
    return [
        {
            "role": "system",
            "content": (
                f"{system_prompt} Continue the given content with new content only. "
                "Never repeat existing text."
            ),
        },
        {
            "role": "user",
            "content": (
                f"Write ONLY the next part ({output_budget} tokens max). Do not repeat "
                f'any existing text. Content so far: "{document}"'
            ),
        },
    ]


def single_prompt(document: str, system_prompt: str) -> str:
    return f"{system_prompt} Continue this content: {document}"


def budgeted_user_prompt(document: str, output_budget: int) -> str:
    return (
        "Continue this from where it left off (add only new content, "
        f"max {output_budget} tokens): {document}"
    )
