from __future__ import annotations

import pytest

import sevenseg_ocr
from sevenseg_ocr import (
    AnchorPair,
    InputError,
    ManifestError,
    Point,
    load_manifest,
    parse_manifest,
    scan_file,
)


def test_parse_manifest_entries():
    entries = parse_manifest(
        '[{"north": [19, 20], "south": [18, 60]}, null, {}, {"south": [58, 61]}]'
    )
    assert entries == [
        AnchorPair(north=Point(19, 20), south=Point(18, 60)),
        None,
        AnchorPair(),
        AnchorPair(south=Point(58, 61)),
    ]


def test_parse_manifest_accepts_bytes():
    assert parse_manifest(b"[]") == []


@pytest.mark.parametrize(
    "text",
    [
        "{not json",
        '{"north": [1, 2]}',
        "[1]",
        '[{"north": [1]}]',
        '[{"north": [1, 2, 3]}]',
        '[{"south": [1.5, 2]}]',
        '[{"south": ["1", 2]}]',
        '[{"north": [true, 2]}]',
        '[{"nroth": [5, 5]}]',
        '[{"north": [19, 20], "South": [18, 60]}]',
        b'[\xff]',
    ],
)
def test_malformed_manifest_is_rejected(text):
    with pytest.raises(ManifestError):
        parse_manifest(text)


def test_missing_manifest_file(tmp_path):
    with pytest.raises(ManifestError):
        load_manifest(tmp_path / "missing.json")


def test_scan_file_with_partial_manifest(digit_file, manifest_file):
    manifest = manifest_file('[{"north": [18, 22], "south": [17, 58]}]')

    reading = scan_file(digit_file("12"), 2, manifest)

    assert reading.value == "12"
    assert reading.digits[0].north == Point(18, 22)
    assert reading.digits[0].south == Point(17, 58)
    assert reading.digits[1].north == Point(59, 20)
    assert reading.digits[1].south == Point(58, 60)


def test_malformed_manifest_fails_before_scanning(monkeypatch, digit_file, manifest_file):
    def fail(*args, **kwargs):
        raise AssertionError("no position should be scanned")

    monkeypatch.setattr(sevenseg_ocr, "scan_digit", fail)
    monkeypatch.setattr(sevenseg_ocr, "read_image", fail)

    with pytest.raises(ManifestError):
        scan_file(digit_file("12"), 2, manifest_file('[{"north": "19,20"}]'))


def test_unreadable_image_fails_before_scanning(monkeypatch, tmp_path):
    bogus = tmp_path / "display.png"
    bogus.write_text("not an image", encoding="utf-8")
    monkeypatch.setattr(sevenseg_ocr, "scan_digit", lambda *a, **k: pytest.fail("scanned"))

    with pytest.raises(InputError):
        scan_file(bogus, 2)
    with pytest.raises(InputError):
        scan_file(tmp_path / "missing.png", 2)


def test_manifest_file_with_invalid_utf8(tmp_path):
    path = tmp_path / "manifest.json"
    path.write_bytes(b'[{"north": [1, 2]}]\xff\xfe')
    with pytest.raises(ManifestError):
        load_manifest(path)
