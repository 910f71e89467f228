"""Structured record extraction from portal approval detail pages.

The detail page is loosely structured Bootstrap HTML: form groups pairing a
``<label>`` with a disabled ``<input>``, photo cards, and an approval log
accordion. Every lookup degrades to an empty string or a sentinel value, so
extraction never raises on malformed input.
"""

from __future__ import annotations

import logging
import re

from lxml import etree, html

from bapp_review.models import (
    DEFAULT_IMAGE_CAPTION,
    HISTORY_NOTE_UNKNOWN,
    TRACKING_NUMBER_UNKNOWN,
    ApprovalLogEntry,
    ExtractedRecord,
    ImageRef,
    ItemInfo,
    SchoolInfo,
)

logger = logging.getLogger(__name__)

TRACKING_LABELS: tuple[str, ...] = ("No. Resi", "No Resi")
TRACKING_PATTERN = r"No\.?\s*Resi\s*[:\n]?\s*([A-Z0-9]+)"
APPROVAL_BUTTON_XPATH = '//button[contains(@onclick, "approvalFunc")]'


def _has_class(name: str) -> str:
    return f'contains(concat(" ", normalize-space(@class), " "), " {name} ")'


def _with_classes(*names: str) -> str:
    return "*[" + " and ".join(_has_class(name) for name in names) + "]"


IMAGE_BLOCK_XPATH = (
    f"//{_with_classes('card')}//{_with_classes('card-body')}//{_with_classes('col-6')}"
)
LOG_CONTAINER_XPATH = f'//*[@id="logApproval"]//{_with_classes("accordion-body")}'


class DocumentExtractor:
    """Turns raw detail HTML into an :class:`ExtractedRecord`."""

    def __init__(self, *, tracking_case_insensitive: bool = True) -> None:
        flags = re.IGNORECASE if tracking_case_insensitive else 0
        self._tracking_pattern = re.compile(TRACKING_PATTERN, flags)

    def extract(self, document: str, initial_external_id: str = "") -> ExtractedRecord:
        root = _parse(document)
        if root is None:
            return ExtractedRecord(external_id=initial_external_id)

        record = ExtractedRecord(
            school=SchoolInfo(
                npsn=_value_by_label(root, "NPSN"),
                name=_value_by_label(root, "Nama Sekolah"),
                address=_value_by_label(root, "Alamat"),
                district=_value_by_label(root, "Kecamatan"),
                regency=_value_by_label(root, "Kabupaten"),
                province=_value_by_label(root, "Provinsi"),
            ),
            item=ItemInfo(
                serial_number=_value_by_label(root, "Serial Number"),
                item_name=_value_by_label(root, "Nama Barang"),
            ),
            images=_images(root),
            history=_history(root),
            external_id=_approval_id(root) or initial_external_id,
            tracking_number=self._tracking_number(root),
        )
        degraded = record.degraded_fields()
        if degraded:
            logger.debug("Detail extraction degraded fields: %s", ", ".join(degraded))
        return record

    def _tracking_number(self, root: html.HtmlElement) -> str:
        for label in TRACKING_LABELS:
            value = _value_by_label(root, label)
            if value:
                return value
        match = self._tracking_pattern.search(_text(root.find("body")))
        if match:
            return match.group(1)
        return TRACKING_NUMBER_UNKNOWN


def extract_record(
    document: str,
    initial_external_id: str = "",
    *,
    tracking_case_insensitive: bool = True,
) -> ExtractedRecord:
    """Extract a record from detail HTML with default options."""

    extractor = DocumentExtractor(tracking_case_insensitive=tracking_case_insensitive)
    return extractor.extract(document, initial_external_id)


def _parse(document: str) -> html.HtmlElement | None:
    if not document or not document.strip():
        return None
    try:
        return html.document_fromstring(document)
    except (etree.LxmlError, ValueError) as exc:
        logger.warning("Unparseable detail document: %s", exc)
        return None


def _text(element: html.HtmlElement | None) -> str:
    if element is None:
        return ""
    return element.text_content().strip()


def _first(root: html.HtmlElement, xpath: str) -> html.HtmlElement | None:
    found = root.xpath(xpath)
    return found[0] if found else None


def _value_by_label(root: html.HtmlElement, phrase: str) -> str:
    for label in root.iter("label"):
        if phrase not in _text(label):
            continue
        group = label.getparent()
        if group is None:
            return ""
        field = _first(group, ".//input | .//textarea")
        if field is None:
            return ""
        if field.tag == "textarea":
            return field.text_content() or field.get("value", "")
        return field.get("value", "")
    return ""


def _approval_id(root: html.HtmlElement) -> str:
    button = _first(root, APPROVAL_BUTTON_XPATH)
    if button is None:
        return ""
    return (button.get("data-id") or "").strip()


def _images(root: html.HtmlElement) -> tuple[ImageRef, ...]:
    images: list[ImageRef] = []
    for block in root.xpath(IMAGE_BLOCK_XPATH):
        image = _first(block, ".//img")
        if image is None:
            continue
        header = _first(block, f".//{_with_classes('card-header')}")
        images.append(
            ImageRef(
                source=image.get("src", ""),
                caption=_text(header) or DEFAULT_IMAGE_CAPTION,
            ),
        )
    return tuple(images)


def _history(root: html.HtmlElement) -> tuple[ApprovalLogEntry, ...]:
    container = _first(root, LOG_CONTAINER_XPATH)
    if container is None:
        return ()
    entries: list[ApprovalLogEntry] = []
    for entry in container.xpath(f".//{_with_classes('border', 'rounded')}"):
        user = _text(_first(entry, f".//{_with_classes('fw-semibold')}"))
        entries.append(
            ApprovalLogEntry(
                date=_text(_first(entry, f".//{_with_classes('text-muted')}")),
                status=_text(_first(entry, f".//{_with_classes('fw-bold')}")),
                user=user.replace("User:", "").strip(),
                note=_history_note(entry),
            ),
        )
    return tuple(entries)


def _history_note(entry: html.HtmlElement) -> str:
    marker = _first(entry, f".//{_with_classes('mt-2', 'small')}")
    if marker is None:
        return HISTORY_NOTE_UNKNOWN
    following = next(
        (sibling for sibling in marker.itersiblings() if isinstance(sibling.tag, str)),
        None,
    )
    return _text(following) or HISTORY_NOTE_UNKNOWN
