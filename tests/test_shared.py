import re
from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from vetclinic.services.notification_service import NotificationService
from vetclinic.shared.errors import InsufficientStock, NotFound, UpstreamStorageError
from vetclinic.shared.results import collect
from vetclinic.shared.validators import amounts_match, generate_reference


def test_generate_reference_format():
    reference = generate_reference("INV", datetime(2025, 3, 9, 14, 5, 7))
    assert re.fullmatch(r"INV-250309-140507-[0-9A-F]{6}", reference)


def test_amounts_match_within_a_cent():
    assert amounts_match(100.0, 100.005)
    assert amounts_match(0.1 + 0.2, 0.3)
    assert not amounts_match(100.0, 100.02)


def test_error_payloads():
    assert NotFound("Invoice", 7).to_dict() == {
        "error": "not_found",
        "detail": "Invoice 7 not found",
        "context": {"entity": "Invoice", "id": 7},
    }
    assert InsufficientStock(3, 5, 1).to_dict()["context"]["available"] == 1
    assert "Storage" not in UpstreamStorageError("db host 10.0.0.3 down").to_dict()["detail"]


def test_collect_keeps_every_outcome():
    resets = []

    def compute(n):
        if n == 2:
            raise NotFound("Product", n)
        if n == 3:
            raise OperationalError("UPDATE", {}, Exception("gone"))
        return n * 10

    outcome = collect([1, 2, 3, 4], compute, on_storage_error=lambda: resets.append(True))

    assert [item.value_or(None) for item in outcome.items] == [10, None, None, 40]
    assert outcome.items[1].error.code == "not_found"
    assert outcome.items[2].error.code == "storage_error"
    assert resets == [True]
    assert outcome.to_dict()["failed"] == 2


def test_collect_propagates_unexpected_errors():
    def compute(_):
        raise RuntimeError("bug")

    with pytest.raises(RuntimeError):
        collect([1], compute)


def test_unknown_notification_type_is_refused(db):
    with pytest.raises(ValueError):
        NotificationService(db).record(1, "sms_blast", "hello")
