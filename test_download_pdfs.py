import logging
import os

import pytest
import requests

from download_pdfs import download_all, download_pdf
from errors import DownloadError
from schedule_cache import ManifestStore, sha256_hex

PDF_URL = "https://sfrecpark.org/DocumentCenter/View/3001"
NEW_PDF_URL = "https://sfrecpark.org/DocumentCenter/View/3002"


@pytest.fixture
def manifest(tmp_path):
    return ManifestStore(str(tmp_path / "manifest.json"))


def discovered(url=PDF_URL):
    return [{"poolId": "balboa", "poolName": "Balboa Pool", "pageUrl": "https://sfrecpark.org/balboa", "pdfUrl": url}]


def test_downloads_and_records_hash(tmp_path, manifest, fake_session):
    session = fake_session({PDF_URL: b"%PDF-1.4 balboa"})

    summary = download_all(discovered(), manifest, pdf_dir=str(tmp_path), session=session, delay=0, force=False)

    assert summary == {"downloaded": 1, "skipped": 0, "failed": 0}
    assert (tmp_path / "balboa.pdf").read_bytes() == b"%PDF-1.4 balboa"
    entry = manifest.get("balboa")
    assert entry["documentUrl"] == PDF_URL
    assert entry["contentHash"] == sha256_hex(b"%PDF-1.4 balboa")
    assert entry["filename"] == "balboa.pdf"


def test_unchanged_pdf_is_not_downloaded_again(tmp_path, manifest, fake_session):
    download_all(discovered(), manifest, pdf_dir=str(tmp_path), session=fake_session({PDF_URL: b"%PDF-1.4"}),
                 delay=0, force=False)

    session = fake_session({PDF_URL: b"%PDF-1.4"})
    summary = download_all(discovered(), manifest, pdf_dir=str(tmp_path), session=session, delay=0, force=False)

    assert summary["skipped"] == 1
    assert session.requests == []


def test_force_and_url_change_trigger_download(tmp_path, manifest, fake_session):
    download_all(discovered(), manifest, pdf_dir=str(tmp_path), session=fake_session({PDF_URL: b"%PDF-1.4"}),
                 delay=0, force=False)

    session = fake_session({PDF_URL: b"%PDF-1.4"})
    assert download_all(discovered(), manifest, pdf_dir=str(tmp_path), session=session, delay=0,
                        force=True)["downloaded"] == 1

    session = fake_session({NEW_PDF_URL: b"%PDF-1.4 new"})
    assert download_all(discovered(NEW_PDF_URL), manifest, pdf_dir=str(tmp_path), session=session, delay=0,
                        force=False)["downloaded"] == 1
    assert manifest.get("balboa")["documentUrl"] == NEW_PDF_URL


def test_failed_download_keeps_previous_state(tmp_path, manifest, fake_session):
    download_all(discovered(), manifest, pdf_dir=str(tmp_path), session=fake_session({PDF_URL: b"%PDF-1.4 old"}),
                 delay=0, force=False)
    before = dict(manifest.get("balboa"))

    session = fake_session(error=requests.ConnectionError("connection reset"))
    summary = download_all(discovered(NEW_PDF_URL), manifest, pdf_dir=str(tmp_path), session=session,
                           delay=0, force=False)

    assert summary["failed"] == 1
    assert manifest.get("balboa") == before
    assert (tmp_path / "balboa.pdf").read_bytes() == b"%PDF-1.4 old"
    assert sorted(os.listdir(tmp_path)) == ["balboa.pdf"]


def test_http_error_raises_download_error(tmp_path, fake_session):
    with pytest.raises(DownloadError):
        download_pdf(PDF_URL, str(tmp_path / "x.pdf"), session=fake_session({}))
    assert os.listdir(tmp_path) == []


def test_pools_without_pdf_are_skipped(tmp_path, manifest, fake_session):
    session = fake_session({})
    summary = download_all(discovered(None), manifest, pdf_dir=str(tmp_path), session=session, delay=0, force=False)
    assert summary == {"downloaded": 0, "skipped": 1, "failed": 0}
    assert manifest.entries == {}


def test_non_pdf_content_is_logged(tmp_path, manifest, fake_session, caplog):
    session = fake_session({PDF_URL: b"<html>Page not found</html>"})

    with caplog.at_level(logging.WARNING, logger="download_pdfs"):
        download_all(discovered(), manifest, pdf_dir=str(tmp_path), session=session, delay=0, force=False)

    assert f"{PDF_URL} does not look like a PDF" in caplog.text
