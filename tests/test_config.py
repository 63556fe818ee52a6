# tests/test_config.py

import logging

import pytest

from exam_core.config import Settings, configure_logging, load_settings

ENV_VARS = [
    "EXAM_LOG_LEVEL",
    "EXAM_LOG_FILE",
    "EXAM_BASE_SEED",
    "EXAM_BALANCE_WARNING",
    "EXAM_MINUTES_PER_QUESTION",
    "EXAM_OUTPUT_DIR",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    # setenv first so teardown also removes values load_dotenv writes
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    env_file = tmp_path / ".env"
    env_file.write_text("", encoding="utf-8")
    return str(env_file)


def test_defaults(clean_env):
    assert load_settings(clean_env) == Settings()


def test_environment_overrides(clean_env, monkeypatch):
    monkeypatch.setenv("EXAM_LOG_LEVEL", "debug")
    monkeypatch.setenv("EXAM_LOG_FILE", "")
    monkeypatch.setenv("EXAM_BASE_SEED", "term-2")
    monkeypatch.setenv("EXAM_MINUTES_PER_QUESTION", "1.5")
    monkeypatch.setenv("EXAM_BALANCE_WARNING", "0.35")

    s = load_settings(clean_env)
    assert s.log_level == "DEBUG"
    assert s.log_file is None
    assert s.base_seed == "term-2"
    assert s.minutes_per_question == 1.5
    assert s.balance_warning == 0.35


def test_dotenv_file_is_read(clean_env):
    with open(clean_env, "w", encoding="utf-8") as f:
        f.write("EXAM_OUTPUT_DIR=exports\nEXAM_BASE_SEED=from-file\n")

    s = load_settings(clean_env)
    assert s.output_dir == "exports"
    assert s.base_seed == "from-file"


def test_environment_wins_over_dotenv(clean_env, monkeypatch):
    with open(clean_env, "w", encoding="utf-8") as f:
        f.write("EXAM_BASE_SEED=from-file\n")
    monkeypatch.setenv("EXAM_BASE_SEED", "from-env")
    assert load_settings(clean_env).base_seed == "from-env"


@pytest.mark.parametrize("value", ["abc", "0", "-2"])
def test_bad_minutes_rejected(clean_env, monkeypatch, value):
    monkeypatch.setenv("EXAM_MINUTES_PER_QUESTION", value)
    with pytest.raises(ValueError, match="EXAM_MINUTES_PER_QUESTION"):
        load_settings(clean_env)


def test_configure_logging_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "run.log"
    root = logging.getLogger()
    saved = root.handlers[:], root.level
    try:
        configure_logging(Settings(log_level="INFO", log_file=str(log_file)))
        logging.getLogger("exam_core.test").info("hello log")
        for h in root.handlers:
            h.flush()
        assert "hello log" in log_file.read_text(encoding="utf-8")
        assert " INFO - hello log" in log_file.read_text(encoding="utf-8")
    finally:
        for h in root.handlers:
            h.close()
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
