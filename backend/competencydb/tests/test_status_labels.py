from __future__ import annotations

import pytest

from competencydb import status_labels
from competencydb.errors import ValidationError


def test_default_labels():
    assert status_labels.label_for("training_request", 2) == "In Queue"
    assert status_labels.label_for("training_request", 8) == "Training Completed"
    assert status_labels.label_for("vpa", 3) == "Resubmit for Re-validation"
    assert status_labels.label_for("vsr", 4) == "Pass"


def test_out_of_range_codes_are_unknown():
    assert status_labels.label_for("vsr", 5) == status_labels.UNKNOWN_LABEL
    assert status_labels.label_for("vsr", -1) == status_labels.UNKNOWN_LABEL


def test_labels_follow_environment(monkeypatch):
    monkeypatch.setenv("VSR_STATUS", "Open, Booked ,,Done")

    assert status_labels.labels_for("vsr") == ["Open", "Booked", "Done"]
    assert status_labels.code_for("vsr", "booked") == 1
    assert status_labels.code_for("vsr", "Pass") == 0


def test_queue_eligible_statuses(monkeypatch):
    monkeypatch.delenv("QUEUE_ELIGIBLE_STATUSES", raising=False)
    assert status_labels.queue_eligible_statuses() == {2, 3, 7}

    monkeypatch.setenv("QUEUE_ELIGIBLE_STATUSES", "2, 6")
    assert status_labels.queue_eligible_statuses() == {2, 6}

    monkeypatch.setenv("QUEUE_ELIGIBLE_STATUSES", "2,x")
    with pytest.raises(RuntimeError):
        status_labels.queue_eligible_statuses()


def test_coerce_status():
    from competencydb.apps.validation.models import VSRStatus

    assert status_labels.coerce_status(VSRStatus, "4") is VSRStatus.PASS

    for bad in (5, "pass", None):
        with pytest.raises(ValidationError) as excinfo:
            status_labels.coerce_status(VSRStatus, bad)
        assert excinfo.value.detail[0]["field"] == "status"
