import threading

import pytest

from licledger.common.exceptions import (
    AlreadyTerminated,
    BatchSizeExceeded,
    DuplicateLicense,
    InvalidDetails,
    InvalidLicenseId,
    LicenseMissing,
    PermissionDenied,
)
from licledger.common.models import LicenseStatus
from licledger.ledger.core import LicenseLedger

ADMIN = "admin"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"


@pytest.fixture
def ledger() -> LicenseLedger:
    return LicenseLedger(ADMIN)


@pytest.fixture
def issued(ledger: LicenseLedger) -> int:
    """A license issued to the administrator."""
    return ledger.issue(ADMIN, "Pro edition, 5 seats")


def _owned_by(ledger: LicenseLedger, license_id: int, owner: str) -> None:
    ledger.transfer(owner, license_id, ADMIN, owner)


# Issuance


def test_issue_assigns_next_id_and_advances_counter(ledger: LicenseLedger) -> None:
    before = ledger.total_issued()
    license_id = ledger.issue(ADMIN, "first")
    assert license_id == before + 1
    assert ledger.total_issued() == before + 1
    assert ledger.issue(ADMIN, "second") == license_id + 1


def test_issue_makes_admin_the_owner(ledger: LicenseLedger, issued: int) -> None:
    assert ledger.get_owner(issued) == ADMIN
    assert ledger.get_metadata(issued) == "Pro edition, 5 seats"
    assert ledger.is_terminated(issued) is False


def test_issue_by_non_admin_is_denied(ledger: LicenseLedger) -> None:
    with pytest.raises(PermissionDenied) as exc_info:
        ledger.issue(ALICE, "stolen")
    assert exc_info.value.code == 200  # noqa: PLR2004
    assert ledger.total_issued() == 0


@pytest.mark.parametrize("metadata", ["", "x" * 513])
def test_issue_rejects_metadata_out_of_bounds(
    ledger: LicenseLedger, metadata: str
) -> None:
    with pytest.raises(InvalidDetails) as exc_info:
        ledger.issue(ADMIN, metadata)
    assert exc_info.value.code == 204  # noqa: PLR2004
    assert ledger.total_issued() == 0


def test_issue_accepts_metadata_at_bounds(ledger: LicenseLedger) -> None:
    assert ledger.issue(ADMIN, "x") == 1
    assert ledger.issue(ADMIN, "y" * 512) == 2  # noqa: PLR2004


def test_issue_batch_preserves_order(ledger: LicenseLedger) -> None:
    ledger.issue(ADMIN, "existing")
    ids = ledger.issue_batch(ADMIN, ["a", "b", "c"])
    assert ids == [2, 3, 4]
    assert [ledger.get_metadata(i) for i in ids] == ["a", "b", "c"]
    assert ledger.total_issued() == 4  # noqa: PLR2004


def test_issue_batch_at_limit(ledger: LicenseLedger) -> None:
    ids = ledger.issue_batch(ADMIN, [f"license {i}" for i in range(50)])
    assert ids == list(range(1, 51))


def test_issue_batch_over_limit_issues_nothing(ledger: LicenseLedger) -> None:
    with pytest.raises(BatchSizeExceeded) as exc_info:
        ledger.issue_batch(ADMIN, [f"license {i}" for i in range(51)])
    assert exc_info.value.code == 206  # noqa: PLR2004
    assert ledger.total_issued() == 0


def test_issue_batch_with_invalid_item_issues_nothing(ledger: LicenseLedger) -> None:
    ledger.issue(ADMIN, "existing")
    with pytest.raises(InvalidDetails):
        ledger.issue_batch(ADMIN, ["ok", "", "also ok"])
    assert ledger.total_issued() == 1
    assert ledger.peek_next_id() == 2  # noqa: PLR2004
    assert not ledger.exists(2)


def test_issue_batch_by_non_admin_is_denied(ledger: LicenseLedger) -> None:
    with pytest.raises(PermissionDenied):
        ledger.issue_batch(ALICE, ["a"])
    assert ledger.total_issued() == 0


def test_issue_batch_empty(ledger: LicenseLedger) -> None:
    assert ledger.issue_batch(ADMIN, []) == []
    assert ledger.total_issued() == 0


def test_issue_batch_rejects_plain_string(ledger: LicenseLedger) -> None:
    with pytest.raises(InvalidDetails, match="not a string"):
        ledger.issue_batch(ADMIN, "abc")  # type: ignore[arg-type]
    assert ledger.total_issued() == 0


def test_issue_batch_accepts_any_iterable(ledger: LicenseLedger) -> None:
    assert ledger.issue_batch(ADMIN, (f"edition {i}" for i in range(3))) == [1, 2, 3]


def test_issue_onto_occupied_id_is_refused(ledger: LicenseLedger) -> None:
    ledger._metadata[1] = "stray"  # noqa: SLF001
    with pytest.raises(DuplicateLicense) as exc_info:
        ledger.issue(ADMIN, "meta")
    assert exc_info.value.code == 201  # noqa: PLR2004
    assert ledger.total_issued() == 0
    assert ledger.get_owner(1) is None


def test_ids_are_never_reused_after_termination(
    ledger: LicenseLedger, issued: int
) -> None:
    ledger.terminate(ADMIN, issued)
    assert ledger.issue(ADMIN, "next") == issued + 1


# Transfer


def test_transfer_requires_recipient_as_caller(
    ledger: LicenseLedger, issued: int
) -> None:
    assert ledger.transfer(BOB, issued, ADMIN, BOB) is True
    assert ledger.get_owner(issued) == BOB


def test_transfer_by_third_party_is_denied(ledger: LicenseLedger, issued: int) -> None:
    with pytest.raises(PermissionDenied):
        ledger.transfer(CAROL, issued, ADMIN, BOB)
    assert ledger.get_owner(issued) == ADMIN


def test_transfer_with_wrong_current_owner_is_denied(
    ledger: LicenseLedger, issued: int
) -> None:
    with pytest.raises(PermissionDenied):
        ledger.transfer(BOB, issued, ALICE, BOB)
    assert ledger.get_owner(issued) == ADMIN


def test_transfer_of_unissued_license_is_missing(ledger: LicenseLedger) -> None:
    with pytest.raises(LicenseMissing) as exc_info:
        ledger.transfer(BOB, 42, ADMIN, BOB)
    assert exc_info.value.code == 202  # noqa: PLR2004


def test_transfer_of_terminated_license(ledger: LicenseLedger, issued: int) -> None:
    ledger.terminate(ADMIN, issued)
    with pytest.raises(AlreadyTerminated):
        ledger.transfer(BOB, issued, ADMIN, BOB)


def test_transfer_changes_nothing_but_owner(ledger: LicenseLedger, issued: int) -> None:
    ledger.transfer(ALICE, issued, ADMIN, ALICE)
    ledger.transfer(BOB, issued, ALICE, BOB)
    assert ledger.get_owner(issued) == BOB
    assert ledger.get_metadata(issued) == "Pro edition, 5 seats"
    assert ledger.status(issued) is LicenseStatus.ACTIVE
    assert ledger.total_issued() == 1


def test_transfer_rejects_non_positive_id(ledger: LicenseLedger) -> None:
    with pytest.raises(InvalidLicenseId) as exc_info:
        ledger.transfer(BOB, 0, ADMIN, BOB)
    assert exc_info.value.code == 203  # noqa: PLR2004


# Termination


def test_terminate_burns_ownership(ledger: LicenseLedger, issued: int) -> None:
    _owned_by(ledger, issued, ALICE)
    assert ledger.terminate(ALICE, issued) is True
    assert ledger.get_owner(issued) is None
    assert ledger.is_terminated(issued) is True
    # metadata stays behind as a tombstone
    assert ledger.get_metadata(issued) == "Pro edition, 5 seats"


def test_terminate_twice(ledger: LicenseLedger, issued: int) -> None:
    ledger.terminate(ADMIN, issued)
    with pytest.raises(AlreadyTerminated) as exc_info:
        ledger.terminate(ADMIN, issued)
    assert exc_info.value.code == 205  # noqa: PLR2004


def test_terminate_by_non_owner_is_denied(ledger: LicenseLedger, issued: int) -> None:
    _owned_by(ledger, issued, ALICE)
    with pytest.raises(PermissionDenied):
        ledger.terminate(ADMIN, issued)
    assert ledger.get_owner(issued) == ALICE
    assert ledger.is_terminated(issued) is False


def test_terminate_unissued_license(ledger: LicenseLedger) -> None:
    with pytest.raises(LicenseMissing):
        ledger.terminate(ADMIN, 7)


def test_simple_terminate_keeps_owner(ledger: LicenseLedger, issued: int) -> None:
    _owned_by(ledger, issued, ALICE)
    assert ledger.simple_terminate(ALICE, issued) is True
    assert ledger.is_terminated(issued) is True
    assert ledger.get_owner(issued) == ALICE
    assert ledger.status(issued) is LicenseStatus.TERMINATED
    with pytest.raises(AlreadyTerminated):
        ledger.terminate(ALICE, issued)
    with pytest.raises(AlreadyTerminated):
        ledger.transfer(BOB, issued, ALICE, BOB)


def test_simple_terminate_checks(ledger: LicenseLedger, issued: int) -> None:
    with pytest.raises(LicenseMissing):
        ledger.simple_terminate(ADMIN, 99)
    with pytest.raises(PermissionDenied):
        ledger.simple_terminate(BOB, issued)
    ledger.simple_terminate(ADMIN, issued)
    with pytest.raises(AlreadyTerminated):
        ledger.simple_terminate(ADMIN, issued)


def test_reactivate_clears_flag_without_restoring_owner(
    ledger: LicenseLedger, issued: int
) -> None:
    ledger.terminate(ADMIN, issued)
    assert ledger.reactivate(CAROL, issued) is True
    assert ledger.is_terminated(issued) is False
    assert ledger.get_owner(issued) is None
    assert ledger.status(issued) is LicenseStatus.ACTIVE


def test_reactivate_without_flag_entry(ledger: LicenseLedger, issued: int) -> None:
    with pytest.raises(LicenseMissing):
        ledger.reactivate(ADMIN, issued)


def test_reactivate_restricted_to_admin() -> None:
    ledger = LicenseLedger(ADMIN, restrict_reactivation=True)
    license_id = ledger.issue(ADMIN, "meta")
    ledger.terminate(ADMIN, license_id)
    with pytest.raises(PermissionDenied):
        ledger.reactivate(ALICE, license_id)
    assert ledger.reactivate(ADMIN, license_id) is True


# Metadata


def test_update_metadata_round_trip(ledger: LicenseLedger, issued: int) -> None:
    _owned_by(ledger, issued, ALICE)
    assert ledger.update_metadata(ALICE, issued, "Enterprise edition") is True
    assert ledger.get_metadata(issued) == "Enterprise edition"


@pytest.mark.parametrize("metadata", ["", "z" * 513])
def test_update_metadata_rejects_bad_length(
    ledger: LicenseLedger, issued: int, metadata: str
) -> None:
    with pytest.raises(InvalidDetails):
        ledger.update_metadata(ADMIN, issued, metadata)
    assert ledger.get_metadata(issued) == "Pro edition, 5 seats"


def test_update_metadata_by_non_owner(ledger: LicenseLedger, issued: int) -> None:
    with pytest.raises(PermissionDenied):
        ledger.update_metadata(BOB, issued, "mine now")


def test_update_metadata_of_burned_license(ledger: LicenseLedger, issued: int) -> None:
    ledger.terminate(ADMIN, issued)
    with pytest.raises(LicenseMissing):
        ledger.update_metadata(ADMIN, issued, "after the fact")


def test_update_metadata_on_flagged_license_follows_policy() -> None:
    permissive = LicenseLedger(ADMIN)
    license_id = permissive.issue(ADMIN, "meta")
    permissive.simple_terminate(ADMIN, license_id)
    assert permissive.update_metadata(ADMIN, license_id, "edited") is True

    strict = LicenseLedger(ADMIN, allow_terminated_metadata_update=False)
    license_id = strict.issue(ADMIN, "meta")
    strict.simple_terminate(ADMIN, license_id)
    with pytest.raises(AlreadyTerminated):
        strict.update_metadata(ADMIN, license_id, "edited")
    assert strict.get_metadata(license_id) == "meta"


# Queries


def test_status_lifecycle(ledger: LicenseLedger) -> None:
    assert ledger.status(1) is LicenseStatus.NOT_FOUND
    assert ledger.status(1) == "NotFound"
    license_id = ledger.issue(ADMIN, "meta")
    assert ledger.status(license_id) is LicenseStatus.ACTIVE
    ledger.terminate(ADMIN, license_id)
    assert ledger.status(license_id) is LicenseStatus.TERMINATED


def test_queries_on_unissued_id(ledger: LicenseLedger) -> None:
    assert ledger.get_owner(3) is None
    assert ledger.get_metadata(3) is None
    assert ledger.exists(3) is False
    assert ledger.is_terminated(3) is False
    assert ledger.is_valid(3) is False
    assert ledger.get_license(3) is None


def test_require_owner(ledger: LicenseLedger, issued: int) -> None:
    assert ledger.require_owner(issued) == ADMIN
    with pytest.raises(LicenseMissing):
        ledger.require_owner(issued + 1)


def test_is_valid(ledger: LicenseLedger, issued: int) -> None:
    assert ledger.is_valid(issued) is True
    ledger.terminate(ADMIN, issued)
    assert ledger.is_valid(issued) is False


def test_peek_next_id_is_not_a_reservation(ledger: LicenseLedger) -> None:
    assert ledger.peek_next_id() == 1
    assert ledger.peek_next_id() == 1
    assert ledger.issue(ADMIN, "meta") == 1
    assert ledger.peek_next_id() == 2  # noqa: PLR2004


def test_get_license_record(ledger: LicenseLedger, issued: int) -> None:
    record = ledger.get_license(issued)
    assert record is not None
    assert record.id == issued
    assert record.owner == ADMIN
    assert record.terminated is False
    assert record.status is LicenseStatus.ACTIVE


def test_licenses_of(ledger: LicenseLedger) -> None:
    ids = ledger.issue_batch(ADMIN, ["a", "b", "c"])
    ledger.transfer(ALICE, ids[2], ADMIN, ALICE)
    ledger.transfer(ALICE, ids[0], ADMIN, ALICE)
    assert ledger.licenses_of(ALICE) == [ids[0], ids[2]]
    assert ledger.licenses_of(ADMIN) == [ids[1]]
    assert ledger.licenses_of(BOB) == []


def test_stats(ledger: LicenseLedger) -> None:
    ids = ledger.issue_batch(ADMIN, ["a", "b", "c"])
    ledger.terminate(ADMIN, ids[0])
    stats = ledger.stats()
    assert stats.total_issued == 3  # noqa: PLR2004
    assert stats.active == 2  # noqa: PLR2004
    assert stats.terminated == 1
    assert stats.next_id == 4  # noqa: PLR2004


def test_aliases_delegate_to_canonical_queries(
    ledger: LicenseLedger, issued: int
) -> None:
    assert ledger.owner_of(issued) == ledger.get_owner(issued)
    assert ledger.license_exists(issued) is True
    assert ledger.is_license_terminated(issued) is False
    assert ledger.get_license_status(issued) is LicenseStatus.ACTIVE
    assert ledger.is_license_valid(issued) is True
    assert ledger.get_total_licenses() == 1
    assert ledger.get_next_license_id() == 2  # noqa: PLR2004


def test_independent_ledgers() -> None:
    first = LicenseLedger(ADMIN)
    second = LicenseLedger("other-admin")
    first.issue(ADMIN, "meta")
    assert first.total_issued() == 1
    assert second.total_issued() == 0
    with pytest.raises(PermissionDenied):
        second.issue(ADMIN, "meta")


def test_ledger_requires_admin(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LICLEDGER_ADMIN", raising=False)
    with pytest.raises(ValueError, match="administrator"):
        LicenseLedger()


def test_admin_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LICLEDGER_ADMIN", "env-admin")
    ledger = LicenseLedger()
    assert ledger.admin == "env-admin"


def test_snapshot_is_a_copy(ledger: LicenseLedger, issued: int) -> None:
    snapshot = ledger.snapshot()
    snapshot.ownership[issued] = "mallory"
    assert ledger.get_owner(issued) == ADMIN
    assert snapshot.counter == 1
    assert snapshot.admin == ADMIN


def test_concurrent_issuance_yields_unique_ids(ledger: LicenseLedger) -> None:
    issued_ids: list[int] = []
    lock = threading.Lock()

    def worker() -> None:
        for i in range(25):
            license_id = ledger.issue(ADMIN, f"license {i}")
            with lock:
                issued_ids.append(license_id)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(issued_ids) == list(range(1, 201))
    assert ledger.total_issued() == 200  # noqa: PLR2004
