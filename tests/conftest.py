import os
import shutil
import tempfile
from pathlib import Path

import pytest


@pytest.fixture(scope="session", autouse=True)
def isolate_git_config():
    """Run Git against an empty global configuration.

    The end-to-end tests create throwaway repositories; user-level settings
    such as commit signing or hooks must not leak into them. The previous
    environment is restored after the test session.
    """
    config_dir = Path(tempfile.mkdtemp(prefix="diffsense_gitconfig_"))
    config_path = config_dir / "gitconfig"
    config_path.write_text("[user]\n\tname = DiffSense Tests\n\temail = tests@example.com\n", encoding="utf-8")

    names = ("GIT_CONFIG_GLOBAL", "GIT_CONFIG_NOSYSTEM")
    saved = {name: os.environ.get(name) for name in names}
    os.environ["GIT_CONFIG_GLOBAL"] = str(config_path)
    os.environ["GIT_CONFIG_NOSYSTEM"] = "1"
    try:
        yield
    finally:
        for name, value in saved.items():
            if value is None:
                os.environ.pop(name, None)
            else:
                os.environ[name] = value
        shutil.rmtree(str(config_dir), ignore_errors=True)
