import importlib

from mangum import Mangum

from sark.config import DEFAULT_REVISION_MARKER, DEFAULT_SYSTEM_PROMPT, load_settings


def test_defaults(monkeypatch):
    for name in ("UPSTREAM_MODEL", "UPSTREAM_TEMPERATURE", "UPSTREAM_MAX_TOKENS", "CORS_ALLOW_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.model == "google/gemini-2.5-pro"
    assert settings.base_url == "https://openrouter.ai/api/v1"
    assert settings.temperature == 0.7
    assert settings.max_tokens == 16384
    assert settings.cors_allow_origins == ["*"]


def test_malformed_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("UPSTREAM_MAX_TOKENS", "lots")
    monkeypatch.setenv("UPSTREAM_TEMPERATURE", "warm")
    settings = load_settings()
    assert settings.max_tokens == 16384
    assert settings.temperature == 0.7


def test_prompts_file_is_loaded():
    settings = load_settings()
    assert "single HTML file" in settings.system_prompt
    assert settings.revision_marker.startswith("Here is the current index.html code.")


def test_missing_prompts_file_uses_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv("PROMPTS_PATH", str(tmp_path / "absent.yml"))
    settings = load_settings()
    assert settings.system_prompt == DEFAULT_SYSTEM_PROMPT
    assert settings.revision_marker == DEFAULT_REVISION_MARKER


def test_cors_origin_list(relay_env, upstream, monkeypatch):
    from fastapi.testclient import TestClient
    from sark.app import create_app

    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.example, https://b.example")
    client = TestClient(create_app())
    allowed = client.get("/health", headers={"Origin": "https://b.example"})
    assert allowed.headers["access-control-allow-origin"] == "https://b.example"
    other = client.get("/health", headers={"Origin": "https://evil.example"})
    assert "access-control-allow-origin" not in other.headers


def test_lambda_handler_wraps_app(monkeypatch):
    monkeypatch.setenv("DOTENV_DISABLED", "1")
    module = importlib.import_module("lambda_handler")
    assert isinstance(module.handler, Mangum)
