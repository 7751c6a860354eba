import pytest


@pytest.fixture(autouse=True)
def isolate_user_environment(tmp_path, monkeypatch):
    """Keep tests away from the user's zing config and OpenAI credential.

    The configuration directory is pointed at an empty temporary directory
    and ``OPENAI_API_KEY`` is removed for the duration of each test.
    """
    config_dir = tmp_path / "zing-config"
    monkeypatch.setattr("zing.config.loader._get_config_directory", lambda: config_dir)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    yield
