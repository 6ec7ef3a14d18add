"""Tests for slicecourier/lib/transfer.py - the end-to-end slicing protocol."""

import asyncio
import logging

import pytest

from slicecourier.lib.errors import (
    AcquisitionError,
    ConfigurationError,
    ReleaseError,
    SliceError,
)
from slicecourier.lib.host import FsspecDocumentHost
from slicecourier.lib.report import COMPLETION_MESSAGE, EntryKind, Report
from slicecourier.lib.transfer import SliceTransfer, transmit_chunk
from tests.fake_host import FakeHost, make_document

MB = 1024 * 1024


def _run(host, chunk_size_bytes, report=None, **kwargs):
    report = report if report is not None else Report()
    transfer = SliceTransfer(host, report, **kwargs)
    result = asyncio.run(transfer.run(chunk_size_bytes))
    return result, report


class TestFourMegabyteScenario:
    """4 MB chunks over a 10,000,000 byte document."""

    @pytest.fixture
    def outcome(self):
        host = FakeHost(make_document(10_000_000), arrival_order=[1, 2, 0])
        result, report = _run(host, 4 * MB)
        return host, result, report

    def test_three_slices(self, outcome):
        host, result, _ = outcome
        assert result.slice_count == 3
        assert sorted(s.size_bytes for s in result.collection.slices) == [
            1_611_392,
            4_194_304,
            4_194_304,
        ]
        assert host.slice_requests == [0, 1, 2]

    def test_completion_marker_once_and_last(self, outcome):
        _, _, report = outcome
        markers = [e for e in report.entries if e.kind is EntryKind.COMPLETE]
        assert len(markers) == 1
        assert report.entries[-1].text == COMPLETION_MESSAGE

    def test_close_once_after_all_responses(self, outcome):
        host, result, _ = outcome
        assert host.close_calls == 1
        assert host.responses_at_close == [3]
        assert result.released
        assert result.succeeded

    def test_report_lines(self, outcome):
        _, _, report = outcome
        assert report.lines == [
            "Total file size: 9.53 MB",
            "Number of slices: 3",
            "Sending slice 2: 4096.00 KB",
            "Sending slice 3: 1573.62 KB",
            "Sending slice 1: 4096.00 KB",
            COMPLETION_MESSAGE,
        ]
        assert report.notifications == []


class TestOpenFailure:
    def test_single_notification_and_no_slice_requests(self):
        host = FakeHost(make_document(1000), open_error="file locked")
        result, report = _run(host, MB)

        assert [n.message for n in report.notifications] == ["file locked"]
        assert report.notifications[0].title == "Error"
        assert host.slice_requests == []
        assert host.close_calls == 0
        assert report.entries == []
        assert not result.opened
        assert not result.succeeded
        assert isinstance(result.errors[0], AcquisitionError)

    def test_invalid_chunk_size_raises(self):
        host = FakeHost(make_document(1000))
        with pytest.raises(ConfigurationError):
            _run(host, 0)
        assert host.open_calls == []


class TestSliceFailure:
    """Slice index 2 of 5 fails, the rest succeed."""

    @pytest.fixture
    def outcome(self):
        host = FakeHost(make_document(5000), slice_errors={2: "slice unavailable"})
        result, report = _run(host, 1000)
        return host, result, report

    def test_four_entries_one_notification(self, outcome):
        _, _, report = outcome
        slice_entries = [e for e in report.entries if e.kind is EntryKind.SLICE]
        assert sorted(e.index for e in slice_entries) == [0, 1, 3, 4]
        assert [n.message for n in report.notifications] == ["slice unavailable"]

    def test_transfer_runs_to_the_end(self, outcome):
        host, result, report = outcome
        assert host.slice_requests == [0, 1, 2, 3, 4]
        assert host.close_calls == 1
        assert host.responses_at_close == [5]
        assert report.entries[-1].text == "File transfer finished with 1 failed slice(s)"

    def test_result_records_failure(self, outcome):
        _, result, _ = outcome
        assert result.released
        assert not result.succeeded
        assert [type(e) for e in result.errors] == [SliceError]


class TestListenerFailure:
    def test_close_waits_for_every_response(self):
        class FailingReport(Report):
            def on_slice(self, received):
                super().on_slice(received)
                if received.index == 0:
                    raise RuntimeError("renderer failed")

        host = FakeHost(make_document(5000), arrival_order=[0, 1, 2, 3, 4])

        with pytest.raises(RuntimeError, match="renderer failed"):
            _run(host, 1000, FailingReport())

        assert host.close_calls == 1
        assert host.responses_at_close == [5]


class TestReleaseFailure:
    def test_release_error_is_notified(self):
        host = FakeHost(make_document(2000), close_error="handle busy")
        result, report = _run(host, 1000)

        assert report.completed
        assert [n.message for n in report.notifications] == ["handle busy"]
        assert not result.released
        assert isinstance(result.errors[-1], ReleaseError)
        assert result.collection.complete
        assert not result.succeeded


class TestReuse:
    def test_report_is_reset_between_transfers(self):
        host = FakeHost(make_document(2000))
        report = Report()
        transfer = SliceTransfer(host, report)

        asyncio.run(transfer.run(1000))
        asyncio.run(transfer.run(1000))

        assert len(report.entries) == 5
        assert host.close_calls == 2


class TestTransmitChunk:
    def test_converts_megabytes(self):
        host = FakeHost(make_document(3 * MB))
        report = Report()
        result = asyncio.run(transmit_chunk(host, 1, report))

        assert host.open_calls[0]["slice_size"] == MB
        assert result.slice_count == 3
        assert report.completed

    def test_ordered_report(self):
        host = FakeHost(make_document(3 * MB), arrival_order=[2, 1, 0])
        report = Report()
        asyncio.run(transmit_chunk(host, 1, report, ordered=True))

        slice_indices = [e.index for e in report.entries if e.kind is EntryKind.SLICE]
        assert slice_indices == [0, 1, 2]


class TestFsspecEndToEnd:
    def test_reassembles_local_document(self, deck_path, document_bytes):
        host = FsspecDocumentHost(str(deck_path))
        result, report = _run(host, MB, document=str(deck_path))

        assert result.succeeded
        assert result.collection.assemble() == document_bytes
        assert report.lines[:2] == ["Total file size: 2.50 MB", "Number of slices: 3"]
        assert report.completed

    def test_missing_document_is_notified(self, tmp_path):
        host = FsspecDocumentHost(str(tmp_path / "missing.pptx"))
        result, report = _run(host, MB)

        assert not result.opened
        assert len(report.notifications) == 1


class TestLogContext:
    def test_concurrent_transfers_keep_their_own_document(self, caplog):
        first = SliceTransfer(FakeHost(make_document(3000)), Report(), document="a.pptx")
        second = SliceTransfer(FakeHost(make_document(1000)), Report(), document="b.pptx")

        async def _inner():
            await asyncio.gather(first.run(1000), second.run(1000))

        with caplog.at_level(logging.INFO, logger="slicecourier.lib.transfer"):
            asyncio.run(_inner())

        finished = {
            record.getMessage(): record.document
            for record in caplog.records
            if record.getMessage().startswith("Transfer finished")
        }
        assert finished == {
            "Transfer finished: 3/3 slice(s) received": "a.pptx",
            "Transfer finished: 1/1 slice(s) received": "b.pptx",
        }

    def test_context_is_cleared_after_run(self):
        transfer = SliceTransfer(FakeHost(make_document(1000)), document="deck.pptx")
        asyncio.run(transfer.run(1000))
        assert transfer.logger.context == {}

    def test_failed_slices_log_a_warning(self, caplog):
        host = FakeHost(make_document(2000), slice_errors={1: "read failed"})

        with caplog.at_level(logging.INFO, logger="slicecourier.lib.transfer"):
            _run(host, 1000)

        finished = [r for r in caplog.records if r.getMessage().startswith("Transfer finished")]
        assert [r.levelno for r in finished] == [logging.WARNING]
