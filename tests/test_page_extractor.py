import fitz
import pytest
from PIL import Image

from intelligroup.exceptions import PageExtractionError
from intelligroup.processors import PageExtractor, ProcessingContext


def make_pdf(path, pages=2, width=200, height=300):
    doc = fitz.open()
    for n in range(pages):
        page = doc.new_page(width=width, height=height)
        page.insert_text((20, 40), f"Page {n + 1}")
    doc.save(str(path))
    doc.close()
    return path


def test_pdf_pages_are_rendered_in_order(context, tmp_path):
    pdf = make_pdf(tmp_path / "ballots.pdf", pages=3)

    pages = PageExtractor(context).extract_file(pdf)

    assert [p.page_number for p in pages] == [1, 2, 3]
    assert all(p.source_file == "ballots.pdf" for p in pages)
    assert all(p.mime_type == "image/jpeg" for p in pages)
    assert pages[0].image[:2] == b"\xff\xd8"


def test_render_scale_is_applied(context, tmp_path):
    pdf = make_pdf(tmp_path / "one.pdf", pages=1, width=200, height=300)

    [page] = PageExtractor(context, scale=2.0).extract_file(pdf)

    assert (page.width, page.height) == (400, 600)


def test_image_file_is_one_page(context, tmp_path):
    path = tmp_path / "photo.png"
    Image.new("RGBA", (50, 80), (255, 0, 0, 128)).save(path)

    [page] = PageExtractor(context).extract_file(path)

    assert page.page_number == 1
    assert (page.width, page.height) == (50, 80)
    assert page.image[:2] == b"\xff\xd8"


def test_files_keep_input_order(context, tmp_path):
    second = make_pdf(tmp_path / "a.pdf", pages=1)
    first = tmp_path / "z.jpg"
    Image.new("RGB", (10, 10)).save(first)

    pages = PageExtractor(context).extract_files([first, second])

    assert [p.page_id for p in pages] == ["z.jpg#1", "a.pdf#1"]
    assert context.stats.total_pages == 2


def test_unsupported_file_raises(context, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")

    with pytest.raises(PageExtractionError):
        PageExtractor(context).extract_file(path)


def test_corrupt_pdf_raises(context, tmp_path):
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"definitely not a pdf")

    with pytest.raises(PageExtractionError):
        PageExtractor(context).extract_file(path)


def test_missing_file_fails_validation(config, tmp_path):
    context = ProcessingContext(config=config, input_files=[tmp_path / "missing.pdf"])

    assert PageExtractor(context).run() is False


def test_run_collects_pages(config, tmp_path):
    pdf = make_pdf(tmp_path / "ok.pdf", pages=2)
    context = ProcessingContext(config=config, input_files=[pdf])
    extractor = PageExtractor(context)

    assert extractor.run() is True
    assert len(extractor.pages) == 2
