"""
Shared pytest setup: environment for Settings and common fixtures
"""

import os
import sys
from pathlib import Path

# Add the backend directory to Python path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

# Set up a minimal environment for testing
os.environ.setdefault('SECRET_KEY', 'test-secret-key-for-testing-only')
os.environ.setdefault('JWT_SECRET_KEY', 'test-jwt-secret-key-for-testing-only')
os.environ.setdefault('ALLOWED_HOSTS', 'testserver,localhost')
os.environ.setdefault('RATE_LIMIT_ENABLED', 'false')

import pytest

from bindadmin.core.config import Settings


class FakeBindService:
    """Records reload calls and answers with a fixed outcome"""

    def __init__(self, reload_ok: bool = True):
        self.reload_ok = reload_ok
        self.reload_calls = 0

    async def reload_service(self) -> bool:
        self.reload_calls += 1
        return self.reload_ok


class FakeLauncher:
    """Checker launcher that returns a canned run and remembers its arguments"""

    def __init__(self, returncode=0, output="", timed_out=False):
        from bindadmin.namedconf.validator import CheckerRun
        self.run = CheckerRun(returncode=returncode, output=output, timed_out=timed_out)
        self.calls = []
        self.seen_content = []

    async def __call__(self, args, timeout):
        self.calls.append((list(args), timeout))
        with open(args[-1], encoding="utf-8") as f:
            self.seen_content.append(f.read())
        return self.run


@pytest.fixture
def settings(tmp_path):
    conf_dir = tmp_path / "etc"
    conf_dir.mkdir()
    return Settings(
        NAMED_CONF_DIR=str(conf_dir),
        NAMED_CONF_FILE="named.conf",
        BACKUP_DIR=str(tmp_path / "backup"),
        MAX_BACKUPS=3,
        NAMED_CHECKCONF="named-checkconf",
    )


@pytest.fixture
def fake_bind():
    return FakeBindService()


@pytest.fixture
def fake_launcher():
    return FakeLauncher()
