import pytest

from memsim.config import ENV_PREFIX


@pytest.fixture(autouse=True)
def clean_memsim_env(monkeypatch):
    for name in ("TOTAL_SIZE", "STRATEGY", "VALIDATE", "SEED"):
        monkeypatch.delenv(ENV_PREFIX + name, raising=False)
