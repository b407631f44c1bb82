import logging
from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as SchemaError

from errors import ResponseFormatError

logger = logging.getLogger(__name__)

# Placeholder strings models emit instead of a JSON null
NULL_STRINGS = {"", "null", "none", "undefined"}


class ReplyModel(BaseModel):
    """A JSON reply from the model. Validation failures surface as `ResponseFormatError`."""

    @classmethod
    def from_reply(cls, data):
        try:
            return cls.model_validate(data)
        except SchemaError as e:
            raise ResponseFormatError(f"Reply does not match {cls.__name__}: {e}") from e


class Solution(ReplyModel):
    model_config = ConfigDict(frozen=True)

    steps: str = Field(
        description=(
            "Detailed, easy to follow step-by-step solution. "
            "Formulas MUST be LaTeX wrapped in $ (for example $x^2$)."
        )
    )
    svg: Optional[str] = Field(
        description="SVG source of an illustrative figure for geometry problems, otherwise null.",
    )

    @model_validator(mode="before")
    @classmethod
    def _absent_svg(cls, data):
        if isinstance(data, dict) and "svg" not in data:
            return {**data, "svg": None}
        return data

    @field_validator("steps")
    @classmethod
    def _strip_steps(cls, value):
        return value.strip()

    @field_validator("svg", mode="before")
    @classmethod
    def _null_svg(cls, value):
        if isinstance(value, str) and value.strip().lower() in NULL_STRINGS:
            return None
        return value


class ProblemSolutionResult(ReplyModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    problem_text: str = Field(
        alias="problemText",
        description=(
            "The problem statement copied exactly (from the image, or the given text). "
            "Formulas MUST be LaTeX wrapped in $ (for example $x^2$)."
        ),
    )
    problem_count: int = Field(
        alias="problemCount",
        description="Number of separate problems in the statement (Problem 1, Problem 2 means 2).",
    )
    solution: Solution

    @model_validator(mode="before")
    @classmethod
    def _absent_count(cls, data):
        if isinstance(data, dict) and "problemCount" not in data and "problem_count" not in data:
            return {**data, "problemCount": 1}
        return data

    @field_validator("problem_text")
    @classmethod
    def _strip_text(cls, value):
        return value.strip()

    @field_validator("problem_count", mode="before")
    @classmethod
    def _count_type(cls, value):
        if value is None:
            return 1
        if isinstance(value, bool):
            raise ValueError("problemCount must be an integer")
        return value

    @field_validator("problem_count")
    @classmethod
    def _count_floor(cls, value):
        # Non-positive counts mean "one problem"
        return value if value >= 1 else 1

    @classmethod
    def from_reply(cls, data, fallback_text: Optional[str] = None):
        """
        Validates a decoded solve reply.

        An empty `problemText` is accepted. On the text path `fallback_text`
        replaces a missing or blank one.
        """
        if not isinstance(data, dict):
            raise ResponseFormatError("reply must be a JSON object")
        if fallback_text is not None:
            text = data.get("problemText")
            if not isinstance(text, str) or not text.strip():
                data = {**data, "problemText": fallback_text}
        return super().from_reply(data)


class GeneratedProblems(ReplyModel):
    model_config = ConfigDict(frozen=True)

    problems: List[str] = Field(
        description="Similar problem statements. Formulas use LaTeX wrapped in $.",
    )

    @field_validator("problems")
    @classmethod
    def _drop_blank(cls, value):
        problems = [item.strip() for item in value if item.strip()]
        if not problems:
            raise ValueError("problems array is empty")
        return problems

    @classmethod
    def from_reply(cls, data, limit: Optional[int] = None):
        generated = super().from_reply(data)
        count = len(generated.problems)
        if limit is not None and count > limit:
            logger.warning("Model returned %d problems, keeping the first %d", count, limit)
            return cls(problems=generated.problems[:limit])
        if limit is not None and count < limit:
            logger.warning("Model returned %d problems, %d were requested", count, limit)
        return generated


@dataclass
class PracticeProblem:
    """One generated problem with its (optional) solution and panel state."""
    statement: str
    solution: Optional[Solution] = None
    expanded: bool = False

    @property
    def solved(self) -> bool:
        return self.solution is not None
