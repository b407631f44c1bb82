import os
import logging
from dataclasses import dataclass

from dotenv import load_dotenv

# Upper bound for "how many similar problems", shared by the UI control,
# the session controller and the engine.
MAX_SIMILAR_PROBLEMS = 20

DEFAULT_MODEL = "gemini-2.5-flash"
SUPPORTED_LANGUAGES = ("vi", "en")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    model_name: str = DEFAULT_MODEL
    language: str = "vi"
    solve_temperature: float = 0.2
    generate_temperature: float = 0.8
    log_dir: str = "logs"
    log_level: str = "INFO"


def _float_env(environ, name, default):
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


def load_settings(environ=None) -> Settings:
    """Reads settings from the process environment (after loading `.env`)."""
    if environ is None:
        load_dotenv()
        environ = os.environ

    language = environ.get("TUTOR_LANGUAGE", "vi").strip().lower()
    if language not in SUPPORTED_LANGUAGES:
        logger.warning("Unsupported TUTOR_LANGUAGE=%r, falling back to 'vi'", language)
        language = "vi"

    return Settings(
        api_key=environ.get("GEMINI_API_KEY", ""),
        model_name=environ.get("TUTOR_MODEL", "").strip() or DEFAULT_MODEL,
        language=language,
        solve_temperature=_float_env(environ, "TUTOR_SOLVE_TEMPERATURE", 0.2),
        generate_temperature=_float_env(environ, "TUTOR_GENERATE_TEMPERATURE", 0.8),
        log_dir=environ.get("TUTOR_LOG_DIR", "").strip() or "logs",
        log_level=environ.get("TUTOR_LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )


def configure_logging(settings: Settings) -> logging.Logger:
    """
    Attaches a file handler and a console handler to the root logger.

    Streamlit re-executes the script on every interaction, so handlers are
    only added the first time.
    """
    root = logging.getLogger()
    level = getattr(logging, settings.log_level, logging.INFO)
    root.setLevel(level)

    if not getattr(root, "_tutor_configured", False):
        os.makedirs(settings.log_dir, exist_ok=True)
        formatter = logging.Formatter(LOG_FORMAT)

        fh = logging.FileHandler(os.path.join(settings.log_dir, "tutor_app.log"), encoding="utf-8")
        fh.setFormatter(formatter)
        root.addHandler(fh)

        sh = logging.StreamHandler()
        sh.setFormatter(formatter)
        root.addHandler(sh)

        root._tutor_configured = True

    return logging.getLogger("tutor_app")
