"""Tests for slicecourier/lib/errors.py - structured exception hierarchy."""

from slicecourier.lib.errors import (
    AcquisitionError,
    ConfigurationError,
    ReleaseError,
    SliceError,
    TransferError,
)


class TestTransferError:
    """Tests for base TransferError class."""

    def test_basic_message(self):
        error = TransferError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"

    def test_with_document(self):
        error = TransferError("Open failed", document="deck.pptx")
        assert "[deck.pptx]" in str(error)
        assert error.message == "Open failed"

    def test_with_details_and_suggestion(self):
        error = TransferError(
            "Bad slice",
            details={"slice_index": 3},
            suggestion="Try a smaller chunk size",
        )
        assert "slice_index: 3" in str(error)
        assert "Try a smaller chunk size" in str(error)

    def test_to_dict(self):
        error = TransferError(
            "Test error",
            document="deck.pptx",
            details={"key": "value"},
            suggestion="Fix it",
        )
        d = error.to_dict()
        assert d["error_type"] == "TransferError"
        assert d["message"] == "Test error"
        assert d["document"] == "deck.pptx"
        assert d["details"]["key"] == "value"
        assert d["suggestion"] == "Fix it"


class TestSubclasses:
    def test_all_derive_from_transfer_error(self):
        for cls in (AcquisitionError, ReleaseError, ConfigurationError):
            assert issubclass(cls, TransferError)
        assert issubclass(SliceError, TransferError)

    def test_acquisition_error_keeps_host_message(self):
        error = AcquisitionError("file locked", chunk_size_bytes=4096)
        assert error.message == "file locked"
        assert error.chunk_size_bytes == 4096
        assert error.to_dict()["details"]["chunk_size_bytes"] == 4096

    def test_slice_error_carries_index(self):
        error = SliceError("read failed", index=2)
        assert error.index == 2
        assert error.details["slice_index"] == 2
        assert error.message == "read failed"

    def test_release_error_default_suggestion(self):
        error = ReleaseError("close failed")
        assert error.suggestion is not None
        assert "still be held" in str(error)

    def test_configuration_error_field(self):
        error = ConfigurationError("Bad value", field="chunk_size_mb", value=-1)
        assert error.field == "chunk_size_mb"
        assert error.details == {"field": "chunk_size_mb", "value": "-1"}
