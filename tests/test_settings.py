# tests/test_settings.py
import json

import pytest

from listing_generator.config.settings import (
    DEFAULT_TONE,
    Settings,
    commit_settings,
    load_settings,
)
from listing_generator.core.errors import InvalidCredentialsError, ValidationError
from listing_generator.core.state_store import StateStore


@pytest.fixture
def store(tmp_path):
    return StateStore(tmp_path / "settings.json")


def test_defaults_without_store(store, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    settings = load_settings(store)
    assert settings == Settings()
    assert settings.api_key == ""


def test_env_key_fallback(store, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", " sk-from-env ")
    assert load_settings(store).api_key == "sk-from-env"

    store.update({"api_key": "sk-stored"})
    assert load_settings(store).api_key == "sk-stored"


def test_commit_writes_fixed_keys(store, tmp_path):
    settings = Settings(api_key=" sk-good ", tone="technical", temperature=0.2, image_style="closeup",
                        aspect_ratio="16:9", language="en")
    commit_settings(settings, validate_key=lambda key: key == "sk-good", store=store)

    saved = json.loads((tmp_path / "settings.json").read_text(encoding="utf-8"))
    assert saved["api_key"] == "sk-good"
    assert saved["gen_tone"] == "technical"
    assert saved["gen_temperature"] == 0.2
    assert saved["gen_imageStyle"] == "closeup"
    assert saved["gen_aspectRatio"] == "16:9"
    assert saved["product_api_url"] == settings.save_url

    reloaded = load_settings(StateStore(tmp_path / "settings.json"))
    assert reloaded == settings


def test_rejected_key_writes_nothing(store, tmp_path):
    with pytest.raises(InvalidCredentialsError):
        commit_settings(Settings(api_key="sk-bad"), validate_key=lambda key: False, store=store)
    assert not (tmp_path / "settings.json").exists()
    assert store.all() == {}


def test_empty_key_skips_validation(store):
    calls = []
    commit_settings(Settings(api_key=""), validate_key=calls.append, store=store)
    assert calls == []
    assert store.get("api_key") == ""


@pytest.mark.parametrize("changes", [{"tone": "sarcastic"}, {"temperature": 2}, {"aspect_ratio": "3:2"},
                                     {"language": "de"}, {"image_style": "cartoon"}])
def test_invalid_preferences_rejected(store, changes):
    with pytest.raises(ValidationError):
        commit_settings(Settings().copy(**changes), store=store)
    assert store.all() == {}


def test_bad_stored_values_fall_back(tmp_path, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"gen_tone": "angry", "gen_temperature": "hot", "language": "en"}), encoding="utf-8")

    settings = load_settings(StateStore(path))
    assert settings.tone == DEFAULT_TONE
    assert settings.temperature == 0.8
    assert settings.language == "en"


def test_corrupt_store_uses_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    assert StateStore(path).all() == {}
