"""
Prompt construction for per-file AI reviews.
"""

from typing import Dict, List, Optional

from .config.prompts import FOCUS_AREAS, REVIEW_PROMPT_TEMPLATE, SYSTEM_PROMPT
from .models import ReviewContext


class PromptBuilder:
    """
    Builds the chat messages sent to the AI provider for one file.

    The user prompt is the review template with the file substituted in,
    followed by optional context blocks. A block is left out entirely
    when it has nothing to say.
    """

    def __init__(
        self,
        system_prompt: str = SYSTEM_PROMPT,
        review_prompt: str = REVIEW_PROMPT_TEMPLATE,
        criteria: Optional[Dict[str, bool]] = None
    ):
        self.system_prompt = system_prompt
        self.review_prompt = review_prompt
        self.criteria = dict(criteria) if criteria is not None else {key: True for key in FOCUS_AREAS}

    @classmethod
    def from_settings(cls, settings) -> "PromptBuilder":
        return cls(
            system_prompt=settings.system_prompt,
            review_prompt=settings.review_prompt,
            criteria=settings.review_criteria,
        )

    @property
    def focus_areas(self) -> List[str]:
        return [phrase for key, phrase in FOCUS_AREAS.items() if self.criteria.get(key)]

    def build_review_prompt(
        self,
        filename: str,
        language: str,
        diff: str,
        context: Optional[ReviewContext] = None
    ) -> str:
        """
        Render the user prompt for a file.

        Args:
            filename: Path of the file under review
            language: Detected language tag
            diff: Cleaned diff text
            context: Merge request description and recent commit messages

        Returns:
            Prompt text
        """
        # str.replace keeps braces inside diffs intact
        prompt = (
            self.review_prompt
            .replace("{filename}", filename)
            .replace("{language}", language)
            .replace("{diff}", diff)
        )

        blocks = [prompt]
        if context and context.description:
            blocks.append(f"**Merge Request Description**:\n{context.description}")
        if context and context.commit_messages:
            blocks.append("**Recent Commit Messages**:\n" + "\n".join(context.commit_messages))

        focus_areas = self.focus_areas
        if focus_areas:
            blocks.append(f"**Focus Areas**: {', '.join(focus_areas)}")

        return "\n\n".join(blocks)

    def build_messages(
        self,
        filename: str,
        language: str,
        diff: str,
        context: Optional[ReviewContext] = None
    ) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.build_review_prompt(filename, language, diff, context)},
        ]
