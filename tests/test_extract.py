import pytest

from parsers.extract import DOC, DOCX, PDF, TXT, ResumeTextExtractor, guess_mime_type


@pytest.fixture
def extractor():
    return ResumeTextExtractor()


def test_legacy_word_is_not_handed_to_python_docx(extractor, monkeypatch):
    calls = []
    monkeypatch.setattr(extractor, "read_docx", lambda content: calls.append(content) or "text")
    assert extractor.extract_text(b"\xd0\xcf\x11\xe0", DOC) == ""
    assert calls == []

    assert extractor.extract_text(b"PK", DOCX) == "text"
    assert calls == [b"PK"]


def test_plain_text_is_stripped(extractor):
    assert extractor.extract_text(b"  Ada Lovelace\n", TXT) == "Ada Lovelace"


def test_unreadable_pdf_yields_empty_text(extractor):
    assert extractor.extract_text(b"not a pdf", PDF) == ""


def test_unsupported_type_yields_empty_text(extractor):
    assert extractor.extract_text(b"\x89PNG", "image/png") == ""


@pytest.mark.parametrize("name, declared, expected", [
    ("cv.doc", None, DOC),
    ("cv.DOCX", "application/octet-stream", DOCX),
    ("cv.pdf", PDF, PDF),
])
def test_media_type_guessing(name, declared, expected):
    assert guess_mime_type(name, declared) == expected
