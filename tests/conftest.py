import pytest


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the user's ~/.tagguard and TAGGUARD_* variables."""
    import os
    for key in list(os.environ):
        if key.startswith('TAGGUARD_'):
            monkeypatch.delenv(key)
    home = tmp_path / 'home'
    home.mkdir()
    monkeypatch.setenv('HOME', str(home))
    return home
