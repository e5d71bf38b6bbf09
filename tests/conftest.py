import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from savedata.account_store import InMemoryAccountStore  # noqa: E402
from savedata.blob_store import FileBlobStore  # noqa: E402
from savedata.daily import FixedDailySeed  # noqa: E402
from savedata.service import build_service  # noqa: E402

DAILY_SEED = "dailySeedForTests"


class FrozenClock:
    def __init__(self, moment: datetime) -> None:
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 5, 17, 12, 30, tzinfo=timezone.utc))


@pytest.fixture
def account_a() -> bytes:
    return bytes.fromhex("0a" * 16)


@pytest.fixture
def account_b() -> bytes:
    return bytes.fromhex("0b" * 16)


@pytest.fixture
def accounts(clock) -> InMemoryAccountStore:
    return InMemoryAccountStore(clock=clock)


@pytest.fixture
def blobs(tmp_path: Path) -> FileBlobStore:
    return FileBlobStore(tmp_path / "userdata")


@pytest.fixture
def service(blobs, accounts):
    return build_service(blobs, accounts, FixedDailySeed(DAILY_SEED))
