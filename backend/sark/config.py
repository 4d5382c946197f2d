import os
from dataclasses import dataclass, field
from typing import List, Optional
import pathlib
import yaml


DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "google/gemini-2.5-pro"

# Fallbacks used when prompts.yml is missing or incomplete
DEFAULT_SYSTEM_PROMPT = (
    "You are an elite, advanced web developer and designer.\n"
    "You generate advanced, fully fledged, modern, visually impressive, and highly functional websites.\n"
    "Always include all HTML, CSS, and JavaScript within a single HTML file.\n"
    "When asked to improve or fix an existing website, analyze the current code and make meaningful, "
    "professional, and sophisticated enhancements.\n"
    "Never omit essential website elements.\n"
    "IMPORTANT: Your reply MUST be ONLY the full HTML code, with no markdown, no code block, "
    "no commentary, and no explanations, just the raw code.\n"
    "Do NOT include any ```."
)
DEFAULT_REVISION_MARKER = (
    "Here is the current index.html code. If I ask for improvements or fixes, use this as the base."
)


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str]
    base_url: str
    model: str
    temperature: float
    max_tokens: int
    timeout: float
    cors_allow_origins: List[str]
    log_level: str
    prompts: dict = field(default_factory=dict)

    @property
    def system_prompt(self) -> str:
        return (self.prompts.get("system", {}) or {}).get("website_generation") or DEFAULT_SYSTEM_PROMPT

    @property
    def revision_marker(self) -> str:
        return (self.prompts.get("user", {}) or {}).get("revision_marker") or DEFAULT_REVISION_MARKER


def load_settings() -> Settings:
    cors_env = os.getenv("CORS_ALLOW_ORIGINS", "*")
    cors = [o.strip() for o in cors_env.split(",") if o.strip()] or ["*"]
    return Settings(
        api_key=os.getenv("OPENROUTER_API_KEY"),
        base_url=os.getenv("UPSTREAM_BASE_URL", DEFAULT_BASE_URL),
        model=os.getenv("UPSTREAM_MODEL", DEFAULT_MODEL),
        temperature=_env_number("UPSTREAM_TEMPERATURE", 0.7, float),
        max_tokens=_env_number("UPSTREAM_MAX_TOKENS", 16384, int),
        timeout=_env_number("UPSTREAM_TIMEOUT_SECONDS", 120.0, float),
        cors_allow_origins=cors,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        prompts=_load_prompts(),
    )


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    try:
        return cast(raw) if raw else default
    except ValueError:
        return default


def _load_prompts() -> dict:
    # prompts.yml lives in backend root (parent of sark/)
    backend_root = pathlib.Path(__file__).resolve().parents[1]
    prompts_path = pathlib.Path(os.getenv("PROMPTS_PATH", backend_root / "prompts.yml"))
    try:
        with open(prompts_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return {}
    if not isinstance(data, dict):
        return {}
    return data
