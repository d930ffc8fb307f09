from __future__ import annotations

import pytest

from availability_engine.application.exceptions import DataFetchError, SnapshotWriteError
from availability_engine.domain.entities.result import ErrorKind, Result
from availability_engine.domain.entities.snapshot import snapshot_key


def test_success_unwraps_to_value():
    result = Result.success(["w1"])
    assert result.ok
    assert result.unwrap() == ["w1"]


@pytest.mark.parametrize("kind", [ErrorKind.data_fetch_error, ErrorKind.timeout])
def test_fetch_failures_unwrap_to_data_fetch_error(kind):
    result = Result.failure(kind, "workers query failed")
    assert not result.ok
    with pytest.raises(DataFetchError, match="workers query failed"):
        result.unwrap()


def test_snapshot_failure_unwraps_to_snapshot_write_error():
    with pytest.raises(SnapshotWriteError):
        Result.failure(ErrorKind.snapshot_write_error).unwrap()


def test_snapshot_key_is_deterministic():
    assert snapshot_key("company-a") == "company-a"
    assert snapshot_key("company-a", "svc-1") == "company-a:svc-1"
    assert snapshot_key("company-a", None) == snapshot_key("company-a")
