import io
import json
import re
import time
import logging
from PIL import Image, UnidentifiedImageError
from google import genai
from google.genai import types

import prompts
from config import DEFAULT_MODEL, MAX_SIMILAR_PROBLEMS
from errors import ResponseFormatError, UpstreamError, ValidationError
from models import GeneratedProblems, ProblemSolutionResult

logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_FORMATS = {"PNG", "JPEG", "WEBP"}

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def load_problem_image(data: bytes) -> Image.Image:
    """Opens uploaded bytes as a PIL image, accepting PNG, JPEG and WEBP only."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError(f"Not a readable image: {e}") from e

    if image.format not in SUPPORTED_IMAGE_FORMATS:
        raise ValidationError(f"Unsupported image format: {image.format}")
    # Palette / alpha images are sent as RGB
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    return image


def decode_reply(text) -> dict:
    """Decodes the JSON document the model returned, tolerating code fences."""
    if not text or not text.strip():
        raise ResponseFormatError("Empty reply from model")
    raw = text.strip()
    fenced = _FENCE_RE.match(raw)
    if fenced:
        raw = fenced.group(1)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ResponseFormatError(f"Reply is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ResponseFormatError("Reply is not a JSON object")
    return data


class VLMEngine:
    def __init__(self, api_key: str, model_name: str = DEFAULT_MODEL, language: str = "vi",
                 solve_temperature: float = 0.2, generate_temperature: float = 0.8, client=None):
        """
        Wraps the Gemini client for the three tutor calls.

        A pre-built `client` can be injected (tests); otherwise one is created
        from `api_key`.
        """
        self.client = client if client is not None else genai.Client(api_key=api_key)
        self.model_name = model_name
        self.language = language
        self.solve_temperature = solve_temperature
        self.generate_temperature = generate_temperature

    @classmethod
    def from_settings(cls, settings, api_key: str = None):
        return cls(
            api_key=api_key if api_key is not None else settings.api_key,
            model_name=settings.model_name,
            language=settings.language,
            solve_temperature=settings.solve_temperature,
            generate_temperature=settings.generate_temperature,
        )

    def _generate(self, kind: str, contents, config: types.GenerateContentConfig):
        started = time.monotonic()
        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=config,
            )
        except Exception as e:
            logger.error("%s call to %s failed: %s", kind, self.model_name, e)
            raise UpstreamError(f"Model call failed: {e}") from e
        logger.info("%s call to %s finished in %.2fs", kind, self.model_name, time.monotonic() - started)
        return response

    def _solve_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=prompts.tutor_instruction(self.language),
            response_mime_type="application/json",
            response_schema=ProblemSolutionResult,
            temperature=self.solve_temperature,
        )

    def _parse(self, response, model, **kwargs):
        # Prefer what the SDK parsed; fall back to the JSON text
        parsed = getattr(response, "parsed", None)
        try:
            if isinstance(parsed, model):
                data = parsed.model_dump(by_alias=True)
            else:
                data = decode_reply(response.text)
            return model.from_reply(data, **kwargs)
        except ResponseFormatError:
            logger.error("Failed to parse %s reply: %.500r", model.__name__, response.text)
            raise

    def solve_from_image(self, image) -> ProblemSolutionResult:
        """
        Transcribes, counts and solves the problem shown in `image`.
        `image` may be a PIL image or the raw uploaded bytes.
        """
        if not isinstance(image, Image.Image):
            image = load_problem_image(image)

        response = self._generate(
            "solve_image",
            [image, prompts.image_solve_prompt()],
            self._solve_config(),
        )
        return self._parse(response, ProblemSolutionResult)

    def solve_from_text(self, problem_text: str) -> ProblemSolutionResult:
        """Solves a plain-text statement; the statement is echoed back if the model omits it."""
        if not problem_text or not problem_text.strip():
            raise ValidationError("Problem text is empty")

        response = self._generate(
            "solve_text",
            prompts.text_solve_prompt(problem_text),
            self._solve_config(),
        )
        return self._parse(response, ProblemSolutionResult, fallback_text=problem_text)

    # Solving one generated problem is the text path
    solve_one = solve_from_text

    def generate_similar(self, problem_text: str, count: int) -> GeneratedProblems:
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValidationError(f"Count must be an integer, got {count!r}")
        if not 1 <= count <= MAX_SIMILAR_PROBLEMS:
            raise ValidationError(f"Count must be between 1 and {MAX_SIMILAR_PROBLEMS}, got {count}")
        if not problem_text or not problem_text.strip():
            raise ValidationError("Problem text is empty")

        config = types.GenerateContentConfig(
            system_instruction=prompts.generator_instruction(self.language),
            response_mime_type="application/json",
            response_schema=GeneratedProblems,
            temperature=self.generate_temperature,
        )
        response = self._generate("generate_similar", prompts.similar_prompt(problem_text, count), config)
        return self._parse(response, GeneratedProblems, limit=count)
