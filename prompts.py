"""Instructions sent to the Gemini model. Response schemas are the pydantic models in `models`."""

LANGUAGE_NAMES = {
    "vi": "Vietnamese",
    "en": "English",
}

MATH_CONVENTION = (
    "Every mathematical formula, expression, exponent or fraction MUST be written "
    "in LaTeX and wrapped in a pair of $ signs (for example $x^2 + 2x + 1 = 0$, $\\frac{1}{2}$)."
)


def language_name(language: str) -> str:
    return LANGUAGE_NAMES.get(language, LANGUAGE_NAMES["vi"])


def tutor_instruction(language: str) -> str:
    return (
        "You are an excellent middle-school (grades 6 to 9) math teacher. "
        "Your job is to solve problems in detail, step by step, so that a student can follow. "
        f"Always write in {language_name(language)}. "
        f"IMPORTANT: {MATH_CONVENTION}"
    )


def generator_instruction(language: str) -> str:
    return (
        "You are a creative middle-school (grades 6 to 9) math teacher who writes practice exercises. "
        f"Always write in {language_name(language)}. "
        f"{MATH_CONVENTION}"
    )


def image_solve_prompt() -> str:
    return (
        "Analyse the attached image.\n"
        "1. First copy the problem statement exactly, keeping its line breaks.\n"
        "2. Count how many separate problems it contains (Problem 1 and Problem 2 count as 2).\n"
        "3. Then present a detailed step-by-step solution.\n"
        "4. If it is a geometry problem you MUST draw a clear SVG figure with every label needed "
        "to illustrate it; otherwise return null for the figure.\n"
        "Remember to use LaTeX for formulas ($...$)."
    )


def text_solve_prompt(problem_text: str) -> str:
    return (
        f"Here is the problem: \"{problem_text}\".\n"
        "Present a detailed step-by-step solution. "
        "If it is a geometry problem you MUST draw a clear SVG figure with every label needed "
        "to illustrate it; otherwise return null for the figure. "
        "Remember to use LaTeX for formulas ($...$)."
    )


def similar_prompt(problem_text: str, count: int) -> str:
    return (
        f"Based on the following original problem: \"{problem_text}\", create exactly {count} "
        "similar problems (keep the structure and the number of sub-questions, change only the "
        "numbers or the context). The new problems must test the same area of knowledge and have "
        "equivalent difficulty.\n\n"
        "Formatting requirements:\n"
        "- Each problem must be written clearly.\n"
        "- Sub-questions (a, b, c... or 1, 2, 3...) inside a problem MUST each start on a new line.\n"
        "- Use LaTeX for formulas ($...$).\n"
        "- Do not run everything together into a single paragraph.\n\n"
        "Return the result as a JSON object."
    )

