"""Error taxonomy and JSON bodies."""

from coinledger.errors import (
    AccountNotFound,
    AlreadyReviewed,
    Conflict,
    DeviceExists,
    DuplicateShare,
    GenerationExhausted,
    LedgerError,
    NotFound,
    SessionNotFound,
    StoreError,
    ValidationError,
)


class TestErrorTaxonomy:
    def test_status_codes(self):
        assert ValidationError("x").status_code == 400
        assert AccountNotFound(user_id=1).status_code == 404
        assert SessionNotFound("d", "s").status_code == 404
        assert AlreadyReviewed(1).status_code == 400
        assert DuplicateShare(1, "s").status_code == 400
        assert GenerationExhausted("x").status_code == 500
        assert DeviceExists("d").status_code == 409

    def test_hierarchy(self):
        assert issubclass(AccountNotFound, NotFound)
        assert issubclass(DuplicateShare, Conflict)
        assert issubclass(GenerationExhausted, StoreError)
        assert issubclass(StoreError, LedgerError)

    def test_body_includes_details_when_present(self):
        body = DuplicateShare(3, "abc").to_dict()
        assert body["error"] == "Share already recorded"
        assert body["details"] == {"user_id": 3, "share_id": "abc"}

    def test_body_omits_empty_details(self):
        assert "details" not in ValidationError("bad").to_dict()
