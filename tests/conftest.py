import io
import os
import sys
import tempfile

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Keep test runs independent of the developer's environment
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="intelligroup-test-logs-")
os.environ["AI_PROVIDER"] = "google"
os.environ.pop("AI_MODEL", None)
os.environ.pop("AI_BASE_URL", None)

from intelligroup.config import Config, reset_config  # noqa: E402
from intelligroup.models import ExtractionResult, Page  # noqa: E402
from intelligroup.processors import ProcessingContext  # noqa: E402


def jpeg_bytes(width=40, height=60, color=(200, 200, 200)):
    from PIL import Image

    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture
def make_page():
    """Factory for in-memory pages: make_page(3) -> page 3 of scan.pdf."""
    image = jpeg_bytes()

    def _make(page_number, source_file="scan.pdf"):
        return Page(source_file=source_file, page_number=page_number, image=image, width=40, height=60)

    return _make


@pytest.fixture
def scripted_oracle():
    """
    Build an oracle from a {page_number: result} script.

    A result may be an ExtractionResult, a dict in the model's JSON shape,
    or an exception instance to raise. Missing pages return an empty result.
    Calls are recorded in ``oracle.calls``.
    """

    def _build(script):
        def oracle(page):
            oracle.calls.append(page.page_number)
            outcome = script.get(page.page_number, ExtractionResult.empty())
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        oracle.calls = []
        return oracle

    return _build


@pytest.fixture
def config(tmp_path, monkeypatch):
    """Config rooted in tmp_path with a dummy API key."""
    monkeypatch.setenv("AI_API_KEY", "test-key")
    monkeypatch.setenv("AI_RETRY_DELAY_SEC", "0.01")
    reset_config()
    cfg = Config(base_dir=tmp_path)
    yield cfg
    reset_config()


@pytest.fixture
def context(config):
    return ProcessingContext(config=config)
