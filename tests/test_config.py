import pytest
from scribe.config import Config, load_config, parse_key_list


def test_config_loads_valid_env(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEYS", "key1,key2")

    config = load_config(use_dotenv=False)

    assert config.api_keys == ["key1", "key2"]
    assert config.port == 8000
    assert config.host == "0.0.0.0"
    assert config.gemini_base_url == "https://generativelanguage.googleapis.com"
    assert config.gemini_model == "gemini-3-flash-preview"
    assert config.ocr_batch_size == 6
    assert config.format_max_chars == 7000
    assert config.translate_max_chars == 4500
    assert config.ocr_delay_seconds == 0.8
    assert config.format_delay_seconds == 1.0
    assert config.translate_delay_seconds == 1.2
    assert config.max_files == 200
    assert config.max_finished_jobs == 100
    assert config.finished_job_ttl_seconds == 3600.0
    assert config.log_level == "INFO"


def test_config_allows_missing_api_keys(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEYS", raising=False)

    config = load_config(use_dotenv=False)

    assert config.api_keys == []


def test_config_newline_separated_keys(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEYS", "key1\n\n  key2  \nkey3")

    config = load_config(use_dotenv=False)

    assert config.api_keys == ["key1", "key2", "key3"]


def test_config_custom_values(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEYS", "custom_key")
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("GEMINI_BASE_URL", "https://custom.api.com")
    monkeypatch.setenv("GEMINI_MODEL", "gemini-2.5-flash")
    monkeypatch.setenv("OCR_BATCH_SIZE", "4")
    monkeypatch.setenv("FORMAT_MAX_CHARS", "5000")
    monkeypatch.setenv("TRANSLATE_MAX_CHARS", "3000")
    monkeypatch.setenv("TRANSLATE_DELAY_SECONDS", "0")
    monkeypatch.setenv("MAX_FILES", "50")
    monkeypatch.setenv("MAX_FINISHED_JOBS", "5")
    monkeypatch.setenv("FINISHED_JOB_TTL_SECONDS", "60")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    config = load_config(use_dotenv=False)

    assert config.api_keys == ["custom_key"]
    assert config.port == 9000
    assert config.host == "127.0.0.1"
    assert config.gemini_base_url == "https://custom.api.com"
    assert config.gemini_model == "gemini-2.5-flash"
    assert config.ocr_batch_size == 4
    assert config.format_max_chars == 5000
    assert config.translate_max_chars == 3000
    assert config.translate_delay_seconds == 0.0
    assert config.max_files == 50
    assert config.max_finished_jobs == 5
    assert config.finished_job_ttl_seconds == 60.0
    assert config.log_level == "DEBUG"


def test_config_rejects_non_positive_sizes(monkeypatch):
    monkeypatch.setenv("FORMAT_MAX_CHARS", "0")

    with pytest.raises(ValueError, match="FORMAT_MAX_CHARS must be a positive integer"):
        load_config(use_dotenv=False)


def test_config_rejects_negative_delay():
    with pytest.raises(ValueError, match="OCR_DELAY_SECONDS"):
        Config(ocr_delay_seconds=-1)


def test_parse_key_list_strips_whitespace():
    assert parse_key_list(" key1 , key2 ") == ["key1", "key2"]
    assert parse_key_list("") == []
