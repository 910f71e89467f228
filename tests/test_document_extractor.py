from __future__ import annotations

import allure
import pytest

from bapp_review.http.document_extractor import DocumentExtractor, extract_record
from bapp_review.models import (
    DEFAULT_IMAGE_CAPTION,
    HISTORY_NOTE_UNKNOWN,
    TRACKING_NUMBER_UNKNOWN,
    ExtractedRecord,
)

pytestmark = [
    allure.epic("Review Pipeline"),
    allure.feature("Detail Extraction"),
]

DETAIL_HTML = """
<html><body>
<div class="row">
  <div class="form-group"><label>NPSN</label><input type="text" value="20100001" disabled></div>
  <div class="form-group"><label>Nama Sekolah</label><input value="SD NEGERI 1 CONTOH" disabled></div>
  <div class="form-group"><label>Alamat</label><textarea disabled>Jl. Merdeka No. 1</textarea></div>
  <div class="form-group"><label>Kecamatan</label><input value="Kec. Contoh"></div>
  <div class="form-group"><label>Kabupaten/Kota</label><input value="Kab. Contoh"></div>
  <div class="form-group"><label>Provinsi</label><input value="Prov. Contoh"></div>
  <div class="form-group"><label>Serial Number</label><input value="SN1"></div>
  <div class="form-group"><label>Nama Barang</label><input value="Laptop Pendidikan"></div>
  <div class="form-group"><label>No. Resi</label><input value="JNE0001"></div>
</div>
<div class="card">
  <div class="card-body">
    <div class="row">
      <div class="col-6"><div class="card-header">Foto Sekolah</div><img src="/img/school.jpg"></div>
      <div class="col-6"><div class="card-header"> </div><img src="/img/box.jpg"></div>
      <div class="col-6"><div class="card-header">Tanpa Foto</div></div>
    </div>
  </div>
</div>
<button class="btn btn-success" onclick="approvalFunc(this)" data-id="7781">Approve</button>
<div id="logApproval">
  <div class="accordion-body">
    <div class="border rounded p-2">
      <span class="text-muted">2026-01-05 10:00</span>
      <span class="fw-bold">Ditolak</span>
      <span class="fw-semibold">User: verifikator01</span>
      <div class="mt-2 small">Catatan:</div>
      <div>(5A) Geo Tagging tidak sesuai</div>
    </div>
    <div class="border rounded p-2">
      <span class="fw-bold">Diajukan</span>
    </div>
  </div>
</div>
</body></html>
"""


def test_extracts_school_item_and_tracking_fields() -> None:
    record = extract_record(DETAIL_HTML, "100")

    assert record.school.npsn == "20100001"
    assert record.school.name == "SD NEGERI 1 CONTOH"
    assert record.school.address == "Jl. Merdeka No. 1"
    assert record.school.district == "Kec. Contoh"
    assert record.school.regency == "Kab. Contoh"
    assert record.school.province == "Prov. Contoh"
    assert record.item.serial_number == "SN1"
    assert record.item.item_name == "Laptop Pendidikan"
    assert record.tracking_number == "JNE0001"


def test_document_id_overrides_caller_id() -> None:
    assert extract_record(DETAIL_HTML, "100").external_id == "7781"


def test_caller_id_used_when_document_has_no_approval_button() -> None:
    record = extract_record("<html><body><p>nothing</p></body></html>", "100")
    assert record.external_id == "100"


def test_images_use_header_caption_with_default_and_skip_blocks_without_img() -> None:
    record = extract_record(DETAIL_HTML)

    assert [(image.source, image.caption) for image in record.images] == [
        ("/img/school.jpg", "Foto Sekolah"),
        ("/img/box.jpg", DEFAULT_IMAGE_CAPTION),
    ]


def test_history_entries_fill_missing_subfields() -> None:
    record = extract_record(DETAIL_HTML)

    assert len(record.history) == 2
    first, second = record.history
    assert first.date == "2026-01-05 10:00"
    assert first.status == "Ditolak"
    assert first.user == "verifikator01"
    assert first.note == "(5A) Geo Tagging tidak sesuai"
    assert second.date == ""
    assert second.status == "Diajukan"
    assert second.user == ""
    assert second.note == HISTORY_NOTE_UNKNOWN


def test_missing_label_yields_empty_string() -> None:
    record = extract_record("<html><body><label>NPSN</label></body></html>")
    assert record.school.npsn == ""
    assert record.school.name == ""


class TestTrackingNumberLadder:
    def test_dotted_label_tier(self) -> None:
        html = '<div><label>No. Resi</label><input value="DOT123"></div>'
        assert extract_record(html).tracking_number == "DOT123"

    def test_plain_label_tier(self) -> None:
        html = '<div><label>No Resi</label><input value="PLAIN456"></div>'
        assert extract_record(html).tracking_number == "PLAIN456"

    def test_regex_tier(self) -> None:
        html = "<html><body><p>Pengiriman dengan No Resi: JX789 sudah diterima</p></body></html>"
        assert extract_record(html).tracking_number == "JX789"

    def test_sentinel_when_all_tiers_fail(self) -> None:
        html = "<html><body><p>Tidak ada data pengiriman</p></body></html>"
        assert extract_record(html).tracking_number == TRACKING_NUMBER_UNKNOWN

    def test_regex_tier_respects_case_sensitivity_option(self) -> None:
        html = "<html><body><p>no resi: abc12</p></body></html>"
        assert extract_record(html).tracking_number == "abc12"
        strict = DocumentExtractor(tracking_case_insensitive=False)
        assert strict.extract(html).tracking_number == TRACKING_NUMBER_UNKNOWN


@pytest.mark.parametrize(
    "document",
    [
        "",
        "   \n ",
        "not html at all",
        "<<<>>></div></span><label>",
        '<?xml version="1.0" encoding="utf-8"?><root/>',
        "\x00\x01binary",
        "<table><tr><td><label>NPSN<input></td></tr>",
    ],
)
def test_extraction_is_total(document: str) -> None:
    record = extract_record(document, "42")

    assert isinstance(record, ExtractedRecord)
    assert record.external_id == "42"
    assert record.tracking_number == TRACKING_NUMBER_UNKNOWN
    assert record.images == ()
    assert record.history == ()


def test_degraded_fields_report_sentinels() -> None:
    record = extract_record("<html><body></body></html>")
    assert record.degraded_fields() == ["tracking_number", "external_id"]
    assert "history[1].note" in extract_record(DETAIL_HTML).degraded_fields()
