from __future__ import annotations

from pathlib import Path

from conftest import FakeUploadClient
import pytest

from docupload_pipeline.clients.exceptions import (
    PageUploadError,
    ResourceResolutionError,
    UploadCanceledError,
)
from docupload_pipeline.domain.models import Transcript, UploadSession
from docupload_pipeline.orchestration.page_uploader import (
    EmptyDocumentError,
    PageUploadLoop,
)
from docupload_pipeline.utils.cancellation import CancellationToken
from docupload_pipeline.utils.retry import NR_OF_RETRIES_ON_FAIL, RetryPolicy


def _open(client: FakeUploadClient) -> UploadSession:
    return client.create_upload(1, descriptor={})


def test_uploads_every_page_once_in_page_order(make_document, reporter):
    document = make_document(5)
    # Shuffle the stored order: upload order follows page numbers
    document.pages.reverse()
    client = FakeUploadClient(n_pages=5)

    session = PageUploadLoop(client, reporter).run(document, _open(client))

    assert [call[0] for call in client.put_calls] == [1, 2, 3, 4, 5]
    assert session.job_id == "job-99"
    assert session.upload_complete


def test_sends_current_transcript_with_image(make_document):
    document = make_document(2)
    document.pages[0].transcripts = [
        Transcript(url=document.pages[0].transcripts[0].url, is_current=True),
        Transcript(url=str(document.pages[1].transcripts[0].url), timestamp=99.0),
    ]
    client = FakeUploadClient(n_pages=2)

    PageUploadLoop(client).run(document, _open(client))

    assert client.put_calls[0] == (1, "0001.jpg", "0001.xml")
    assert client.put_calls[1] == (2, "0002.jpg", "0002.xml")


def test_page_without_transcript_sends_image_only(make_document):
    document = make_document(2, with_transcripts=False)
    client = FakeUploadClient(n_pages=2)

    PageUploadLoop(client).run(document, _open(client))

    assert client.put_calls == [(1, "0001.jpg", None), (2, "0002.jpg", None)]


def test_empty_document_is_rejected_before_any_request(make_document):
    document = make_document(1)
    document.pages = []
    client = FakeUploadClient(n_pages=0)
    session = UploadSession(upload_id=1)

    with pytest.raises(EmptyDocumentError):
        PageUploadLoop(client).run(document, session)

    assert client.put_calls == []


def test_percent_reported_after_each_page(make_document, reporter):
    document = make_document(4)
    client = FakeUploadClient(n_pages=4)

    PageUploadLoop(client, reporter).run(document, _open(client))

    assert reporter.percents == [25, 50, 75, 100]


def test_percent_is_floored(make_document, reporter):
    document = make_document(3)
    client = FakeUploadClient(n_pages=3)

    PageUploadLoop(client, reporter).run(document, _open(client))

    assert reporter.percents == [33, 66, 100]


def test_percent_uses_declared_page_number(make_document, reporter):
    document = make_document(page_numbers=[2, 3, 7])
    client = FakeUploadClient(n_pages=3)

    PageUploadLoop(client, reporter).run(document, _open(client))

    # 100 * 7 // 3 is not clamped
    assert reporter.percents == [66, 100, 233]


def test_three_failures_are_absorbed_by_retry_budget(make_document):
    document = make_document(4)
    client = FakeUploadClient(n_pages=4, failures={2: NR_OF_RETRIES_ON_FAIL})
    loop = PageUploadLoop(client)

    session = loop.run(document, _open(client))

    assert [call[0] for call in client.put_calls] == [1, 2, 2, 2, 2, 3, 4]
    assert loop.retries == 3
    assert loop.pages_uploaded == 4
    assert session.job_id == "job-99"


def test_four_failures_raise_last_error_and_stop(make_document):
    document = make_document(4)
    client = FakeUploadClient(n_pages=4, failures={3: 4})
    loop = PageUploadLoop(client)

    with pytest.raises(PageUploadError) as exc_info:
        loop.run(document, _open(client))

    assert exc_info.value is client.errors[-1]
    assert exc_info.value.page_nr == 3
    assert [call[0] for call in client.put_calls] == [1, 2, 3, 3, 3, 3]
    assert loop.pages_uploaded == 2
    assert [p.page_nr for p in loop.session.pages] == [1, 2]


def test_default_policy_makes_four_attempts():
    assert RetryPolicy.immediate().max_attempts == 4


def test_custom_retry_policy_is_used(make_document):
    document = make_document(2)
    client = FakeUploadClient(n_pages=2, failures={1: 1})
    loop = PageUploadLoop(client, retry_policy=RetryPolicy(max_attempts=1))

    with pytest.raises(PageUploadError):
        loop.run(document, _open(client))

    assert len(client.put_calls) == 1


def test_cancellation_before_page_stops_loop(make_document):
    document = make_document(5)
    token = CancellationToken()

    def cancel_after_page_two(page_nr: int) -> None:
        if page_nr == 2:
            token.cancel("stop requested")

    client = FakeUploadClient(n_pages=5, on_put=cancel_after_page_two)
    loop = PageUploadLoop(client, cancel_token=token)

    with pytest.raises(UploadCanceledError) as exc_info:
        loop.run(document, _open(client))

    assert exc_info.value.page_nr == 3
    assert exc_info.value.message == "stop requested"
    assert client.uploaded == [1, 2]
    assert loop.session.pages_uploaded == 2


def test_cancellation_before_first_page(make_document):
    document = make_document(3)
    token = CancellationToken()
    token.cancel()
    client = FakeUploadClient(n_pages=3)

    with pytest.raises(UploadCanceledError):
        PageUploadLoop(client, cancel_token=token).run(document, _open(client))

    assert client.put_calls == []


def test_missing_transcript_file_is_fatal_for_the_page(make_document):
    document = make_document(3)
    Path(document.pages[1].transcripts[0].url).unlink()
    client = FakeUploadClient(n_pages=3)

    with pytest.raises(ResourceResolutionError) as exc_info:
        PageUploadLoop(client).run(document, _open(client))

    assert exc_info.value.page_nr == 2
    assert [call[0] for call in client.put_calls] == [1]


def test_on_page_uploaded_callback_sees_each_session(make_document):
    document = make_document(3)
    client = FakeUploadClient(n_pages=3)
    seen = []

    PageUploadLoop(client).run(
        document,
        _open(client),
        on_page_uploaded=lambda page, session: seen.append(
            (page.page_nr, session.pages_uploaded)
        ),
    )

    assert seen == [(1, 1), (2, 2), (3, 3)]


@pytest.mark.parametrize("n_pages", [97, 161])
def test_last_page_reports_exactly_one_hundred(make_document, reporter, n_pages):
    document = make_document(n_pages, with_transcripts=False)
    client = FakeUploadClient(n_pages=n_pages)

    PageUploadLoop(client, reporter).run(document, _open(client))

    assert reporter.percents[-1] == 100
    assert reporter.percents[0] == 100 // n_pages
