from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from savedata.account_store import InMemoryAccountStore
from savedata.db import SqlAccountStore, SqlAuthenticator
from savedata.errors import AuthenticationError, LedgerFault

ACCOUNT = bytes.fromhex("5a" * 16)
OTHER = bytes.fromhex("a5" * 16)


@pytest.fixture(params=["memory", "sql"])
def store(request, tmp_path, clock):
    if request.param == "memory":
        return InMemoryAccountStore(clock=clock)
    sql = SqlAccountStore.from_url(f"sqlite:///{tmp_path / 'accounts.db'}", clock=clock)
    sql.create_schema()
    return sql


def test_first_writer_wins(store):
    assert store.try_record_seed_completion(ACCOUNT, "seed", 0) is True
    assert store.try_record_seed_completion(ACCOUNT, "seed", 0) is False
    assert store.try_record_seed_completion(ACCOUNT, "seed", 3) is True
    assert store.try_record_seed_completion(OTHER, "seed", 0) is True
    assert store.has_completed(ACCOUNT, "seed", 0)
    assert not store.has_completed(OTHER, "seed", 3)


def test_concurrent_completions_credit_exactly_once(store):
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: store.try_record_seed_completion(ACCOUNT, "race", 0), range(16)))
    assert results.count(True) == 1


def test_daily_run_upsert_keeps_best_score_and_wave(store):
    store.upsert_daily_run(ACCOUNT, 300, 4)
    store.upsert_daily_run(ACCOUNT, 200, 7)
    store.upsert_daily_run(ACCOUNT, 250, 6)
    record = store.daily_run_for(ACCOUNT)
    assert (record.score, record.wave) == (300, 7)
    assert store.daily_run_for(OTHER) is None


def test_daily_runs_are_per_day(store, clock):
    store.upsert_daily_run(ACCOUNT, 10, 1)
    first_day = clock.moment.date()
    clock.moment += timedelta(days=1)
    store.upsert_daily_run(ACCOUNT, 5, 2)
    assert store.daily_run_for(ACCOUNT, first_day).score == 10
    assert store.daily_run_for(ACCOUNT).score == 5


def test_update_stats_replaces_previous(store):
    store.update_stats(ACCOUNT, {"battles": 1})
    store.update_stats(ACCOUNT, {"battles": 2, "eggsHatched": 3})
    assert store.stats_for(ACCOUNT) == {"battles": 2, "eggsHatched": 3}
    assert store.stats_for(OTHER) is None


def test_touch_last_activity(store, clock):
    store.touch_last_activity(ACCOUNT)
    seen = store.last_activity_for(ACCOUNT)
    assert seen.replace(tzinfo=None) == clock.moment.replace(tzinfo=None)


def test_sql_store_without_schema_raises_ledger_fault(tmp_path, clock):
    store = SqlAccountStore.from_url(f"sqlite:///{tmp_path / 'empty.db'}", clock=clock)
    with pytest.raises(LedgerFault):
        store.try_record_seed_completion(ACCOUNT, "seed", 0)
    with pytest.raises(LedgerFault):
        store.upsert_daily_run(ACCOUNT, 1, 1)
    with pytest.raises(LedgerFault):
        store.touch_last_activity(ACCOUNT)


def test_sql_store_values_sqlite_cannot_hold_raise_ledger_fault(tmp_path, clock):
    store = SqlAccountStore.from_url(f"sqlite:///{tmp_path / 'accounts.db'}", clock=clock)
    store.create_schema()
    with pytest.raises(LedgerFault):
        store.upsert_daily_run(ACCOUNT, 2**63, 1)
    with pytest.raises(LedgerFault):
        store.try_record_seed_completion(ACCOUNT, "seed", 2**63)
    assert store.daily_run_for(ACCOUNT) is None
    assert store.try_record_seed_completion(ACCOUNT, "seed", 0) is True


def test_sql_authenticator_resolves_live_tokens(tmp_path, clock):
    store = SqlAccountStore.from_url(f"sqlite:///{tmp_path / 'accounts.db'}", clock=clock)
    store.create_schema()
    store.add_session("live", ACCOUNT, clock.moment + timedelta(hours=1))
    store.add_session("forever", OTHER)
    store.add_session("stale", ACCOUNT, clock.moment - timedelta(minutes=1))
    auth = SqlAuthenticator(store.engine, clock=clock)

    assert auth.resolve("live") == ACCOUNT
    assert auth.resolve("forever") == OTHER
    for token in ("stale", "unknown", ""):
        with pytest.raises(AuthenticationError):
            auth.resolve(token)


def test_naive_and_aware_clocks_agree(tmp_path):
    moment = datetime(2024, 1, 1, 23, 30, tzinfo=timezone(timedelta(hours=-2)))
    store = SqlAccountStore.from_url(f"sqlite:///{tmp_path / 'tz.db'}", clock=lambda: moment)
    store.create_schema()
    store.upsert_daily_run(ACCOUNT, 1, 1)
    # 23:30 at UTC-2 is already the next UTC day
    assert store.daily_run_for(ACCOUNT, datetime(2024, 1, 2).date()) is not None
