"""
Audit Trail Tests

Hash chaining, tamper detection and resuming an existing log.
"""

import json

from verbiforge.security.audit import (
    AuditEventType,
    AuditSeverity,
    TamperAwareAuditLog,
)


def _fill(log, count=3):
    for i in range(count):
        log.log(
            AuditEventType.FILE_STORED,
            "Object stored",
            actor=f"user-{i}",
            collection="uploads",
            handle=f"proj-1_1700000000000-00000{i}_a.txt",
        )


def test_chain_verifies(audit_log):
    _fill(audit_log)

    assert audit_log.verify_integrity() == (True, 3)
    assert audit_log.event_count == 3


def test_empty_log_verifies(tmp_path):
    log = TamperAwareAuditLog(tmp_path / "fresh.log")
    assert log.verify_integrity() == (True, 0)


def test_edited_line_is_detected(audit_log):
    _fill(audit_log)
    lines = audit_log.path.read_text().splitlines()

    record = json.loads(lines[1])
    record["actor"] = "someone-else"
    lines[1] = json.dumps(record, sort_keys=True)
    audit_log.path.write_text("\n".join(lines) + "\n")

    assert audit_log.verify_integrity() == (False, 1)


def test_dropped_line_is_detected(audit_log):
    _fill(audit_log)
    lines = audit_log.path.read_text().splitlines()

    del lines[0]
    audit_log.path.write_text("\n".join(lines) + "\n")

    assert audit_log.verify_integrity() == (False, 0)


def test_resumes_chain_after_reopen(audit_log):
    _fill(audit_log, 2)

    reopened = TamperAwareAuditLog(audit_log.path)
    assert reopened.event_count == 2

    reopened.log(AuditEventType.FILE_DELETED, "Object deleted", handle="x")

    assert reopened.verify_integrity() == (True, 3)


def test_get_events_filters(audit_log):
    _fill(audit_log)
    audit_log.log(
        AuditEventType.DECRYPTION_FAILED,
        "Object could not be decrypted",
        severity=AuditSeverity.WARNING,
        handle="proj-1_1700000000000-000001_a.txt",
    )

    failures = audit_log.get_events(AuditEventType.DECRYPTION_FAILED)
    assert len(failures) == 1
    assert failures[0]["severity"] == "WARNING"

    by_handle = audit_log.get_events(handle="proj-1_1700000000000-000001_a.txt")
    assert [e["event_type"] for e in by_handle] == ["FILE_STORED", "DECRYPTION_FAILED"]

    assert len(audit_log.get_events(limit=2)) == 2


def test_event_ids_are_unique(audit_log):
    ids = {audit_log.log(AuditEventType.FILE_STORED, "Object stored") for _ in range(20)}
    assert len(ids) == 20
