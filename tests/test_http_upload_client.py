from unittest.mock import MagicMock

import pytest
import requests

from docupload_pipeline.clients.exceptions import (
    PageUploadError,
    UploadAPIError,
    UploadAuthError,
    UploadSessionError,
)
from docupload_pipeline.clients.http_upload_client import HttpUploadClient
from docupload_pipeline.domain.config import ServerConfig

BASE_URL = "https://example.org/rest"


def _response(status_code=200, payload=None, reason="OK"):
    response = MagicMock()
    response.status_code = status_code
    response.reason = reason
    response.text = "" if payload is None else str(payload)
    if payload is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def client(monkeypatch):
    client = HttpUploadClient(ServerConfig(base_url=BASE_URL + "/", api_token="t0k"))
    request = MagicMock(return_value=_response(payload={"uploadId": 8}))
    monkeypatch.setattr(client.http_session, "request", request)
    return client


def test_credentials_are_attached_to_session():
    token_client = HttpUploadClient(ServerConfig(base_url=BASE_URL, api_token="abc"))
    cookie_client = HttpUploadClient(ServerConfig(base_url=BASE_URL, session_id="s1"))

    assert token_client.http_session.headers["Authorization"] == "Bearer abc"
    assert cookie_client.http_session.cookies.get("JSESSIONID") == "s1"


def test_create_upload_posts_mets_to_collection(client):
    session = client.create_upload(42, mets="<mets/>")

    method, url = client.http_session.request.call_args.args
    kwargs = client.http_session.request.call_args.kwargs
    assert (method, url) == ("POST", f"{BASE_URL}/uploads")
    assert kwargs["params"] == {"collId": 42}
    assert kwargs["data"] == b"<mets/>"
    assert kwargs["headers"]["Content-Type"] == "application/xml"
    assert kwargs["timeout"] == 60
    assert session.upload_id == 8


def test_create_upload_posts_json_descriptor(client):
    client.create_upload(42, descriptor={"md": {"title": "x"}})

    kwargs = client.http_session.request.call_args.kwargs
    assert kwargs["json"] == {"md": {"title": "x"}}
    assert "data" not in kwargs


def test_create_upload_requires_exactly_one_encoding(client):
    with pytest.raises(ValueError):
        client.create_upload(42)
    with pytest.raises(ValueError):
        client.create_upload(42, mets="<mets/>", descriptor={})


def test_create_upload_rejection_is_session_error(client):
    client.http_session.request.return_value = _response(403, reason="Forbidden")

    with pytest.raises(UploadSessionError) as exc_info:
        client.create_upload(42, mets="<mets/>")

    assert isinstance(exc_info.value.original_exception, UploadAuthError)


def test_put_page_sends_multipart_image_and_transcript(client, tmp_path):
    image = tmp_path / "0001.jpg"
    image.write_bytes(b"img")
    xml = tmp_path / "0001.xml"
    xml.write_bytes(b"<PcGts/>")
    client.http_session.request.return_value = _response(
        payload={"trpUpload": {"uploadId": 8, "jobId": 5}}
    )

    session = client.put_page(8, image, xml)

    method, url = client.http_session.request.call_args.args
    files = client.http_session.request.call_args.kwargs["files"]
    assert (method, url) == ("PUT", f"{BASE_URL}/uploads/8")
    assert files["img"][0] == "0001.jpg"
    assert files["xml"][0] == "0001.xml"
    assert session.job_id == "5"


def test_put_page_without_transcript_sends_image_only(client, tmp_path):
    image = tmp_path / "0001.jpg"
    image.write_bytes(b"img")

    client.put_page(8, image)

    files = client.http_session.request.call_args.kwargs["files"]
    assert set(files) == {"img"}


@pytest.mark.parametrize("status_code", [404, 409, 500, 503])
def test_put_page_error_status_is_page_upload_error(client, tmp_path, status_code):
    image = tmp_path / "0001.jpg"
    image.write_bytes(b"img")
    client.http_session.request.return_value = _response(status_code, reason="Err")

    with pytest.raises(PageUploadError) as exc_info:
        client.put_page(8, image)

    assert isinstance(exc_info.value.original_exception, UploadAPIError)


def test_put_page_network_error_is_page_upload_error(client, tmp_path):
    image = tmp_path / "0001.jpg"
    image.write_bytes(b"img")
    client.http_session.request.side_effect = requests.ConnectionError("reset")

    with pytest.raises(PageUploadError):
        client.put_page(8, image)


def test_put_page_missing_file_is_page_upload_error(client, tmp_path):
    with pytest.raises(PageUploadError):
        client.put_page(8, tmp_path / "missing.jpg")

    client.http_session.request.assert_not_called()


def test_get_upload_status(client):
    client.http_session.request.return_value = _response(
        payload={"uploadId": 8, "pages": {"pageNr": 1, "fileName": "a.jpg"}}
    )

    session = client.get_upload_status(8)

    method, url = client.http_session.request.call_args.args
    assert (method, url) == ("GET", f"{BASE_URL}/uploads/8")
    assert len(session.pages) == 1


def test_unparseable_response_is_api_error(client):
    client.http_session.request.return_value = _response(payload=None)

    with pytest.raises(UploadAPIError):
        client.get_upload_status(8)


def test_auth_error_is_api_error_subclass(client):
    client.http_session.request.return_value = _response(401, reason="Unauthorized")

    with pytest.raises(UploadAuthError):
        client.get_upload_status(8)
