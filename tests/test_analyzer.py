"""Tests for the DSPy-backed analyzer and its helpers."""

import base64
import io
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from PIL import Image

from screenbutler.config.credentials import SettingsCredentialStore
from screenbutler.config.models import LLMSettings
from screenbutler.ingestion import FileEntry
from screenbutler.naming import AnalysisError
from screenbutler.naming.analyzer import (
    ModelAnalyzer,
    build_prompt,
    clean_model_response,
    encode_image,
)


class FakeLM:
    """Stand-in for ``dspy.LM`` that records constructor arguments."""

    created: list[dict[str, Any]] = []

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        FakeLM.created.append(kwargs)


class FakeProgram:
    def __init__(self, reply: Any = None, error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def __call__(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(filename=self.reply)


@pytest.fixture
def analyzer(monkeypatch: pytest.MonkeyPatch) -> ModelAnalyzer:
    FakeLM.created = []
    monkeypatch.setattr("screenbutler.naming.analyzer.dspy.LM", FakeLM)
    settings = LLMSettings(api_key="sk-test", api_base_url="http://localhost:4000/v1")
    return ModelAnalyzer(settings, SettingsCredentialStore(settings, env={}))


def _entry(path: Path) -> FileEntry:
    return FileEntry(name=path.name, path=path)


@pytest.mark.parametrize(
    ("reply", "expected"),
    [
        ('"Beach Sunset.jpg"', "Beach_Sunset"),
        ("  Team: Q3/Plan?  ", "Team_Q3Plan"),
        ("Report.final.pdf", "Report.final"),
        ("Mountain_Lake", "Mountain_Lake"),
    ],
)
def test_clean_model_response(reply: str, expected: str) -> None:
    assert clean_model_response(reply) == expected


@pytest.mark.parametrize("reply", ["", "   ", '""', "???"])
def test_clean_model_response_rejects_empty_names(reply: str) -> None:
    with pytest.raises(AnalysisError):
        clean_model_response(reply)


def test_build_prompt_selects_template() -> None:
    image = _entry(Path("/x/IMG_0001.png"))
    video = _entry(Path("/x/clip_0002.mov"))
    document = _entry(Path("/x/scan_3.PDF"))

    assert "This is an image file named 'IMG_0001.png'" in build_prompt(image, visual=True)
    assert "video file called 'clip_0002.mov'" in build_prompt(video, visual=False)
    assert "with extension 'pdf'" in build_prompt(document, visual=False)


def test_encode_image_scales_to_jpeg(tmp_path: Path) -> None:
    image_path = tmp_path / "IMG_0001.png"
    Image.new("RGBA", (2048, 1024), color=(255, 0, 0, 128)).save(image_path)

    uri = encode_image(image_path)

    assert uri.startswith("data:image/jpeg;base64,")
    payload = base64.b64decode(uri.split(",", 1)[1])
    with Image.open(io.BytesIO(payload)) as decoded:
        assert decoded.format == "JPEG"
        assert decoded.size == (1024, 512)


def test_encode_image_rejects_unreadable_files(tmp_path: Path) -> None:
    broken = tmp_path / "broken.png"
    broken.write_bytes(b"not an image")

    with pytest.raises(AnalysisError):
        encode_image(broken)


def test_analyzer_requires_credential(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("screenbutler.naming.analyzer.dspy.LM", FakeLM)
    settings = LLMSettings()

    with pytest.raises(RuntimeError):
        ModelAnalyzer(settings, SettingsCredentialStore(settings, env={}))


def test_analyzer_configures_language_models(analyzer: ModelAnalyzer) -> None:
    vision, text = FakeLM.created

    assert vision["model"] == "openai/gpt-4o"
    assert vision["temperature"] == pytest.approx(0.5)
    assert vision["max_tokens"] == 150
    assert vision["api_base"] == "http://localhost:4000/v1"
    assert vision["cache"] is False
    assert text["model"] == "openai/gpt-3.5-turbo"
    assert text["max_tokens"] == 100
    assert "temperature" not in text
    assert all(kwargs["api_key"] == "sk-test" for kwargs in FakeLM.created)


def test_text_analysis_cleans_reply(analyzer: ModelAnalyzer) -> None:
    program = FakeProgram(reply='"Quarterly Budget.xlsx"')
    analyzer._text_program = program  # type: ignore[assignment]

    suggestion = analyzer.analyze(_entry(Path("/x/doc_1.xlsx")), visual=False)

    assert suggestion == "Quarterly_Budget"
    assert "doc_1.xlsx" in program.calls[0]["prompt"]


def test_visual_analysis_sends_image(analyzer: ModelAnalyzer, tmp_path: Path) -> None:
    image_path = tmp_path / "IMG_0001.png"
    Image.new("RGB", (64, 32), color="blue").save(image_path)
    program = FakeProgram(reply="Blue Square")
    analyzer._vision_program = program  # type: ignore[assignment]

    suggestion = analyzer.analyze(_entry(image_path), visual=True)

    assert suggestion == "Blue_Square"
    assert set(program.calls[0]) == {"image", "prompt"}


def test_transport_errors_become_analysis_errors(analyzer: ModelAnalyzer) -> None:
    analyzer._text_program = FakeProgram(error=TimeoutError("timed out"))  # type: ignore[assignment]

    with pytest.raises(AnalysisError, match="timed out"):
        analyzer.analyze(_entry(Path("/x/doc_1.pdf")), visual=False)


def test_unreadable_image_is_analysis_error(analyzer: ModelAnalyzer, tmp_path: Path) -> None:
    broken = tmp_path / "IMG_0002.jpg"
    broken.write_bytes(b"garbage")
    analyzer._vision_program = FakeProgram(reply="unused")  # type: ignore[assignment]

    with pytest.raises(AnalysisError):
        analyzer.analyze(_entry(broken), visual=True)


def test_missing_filename_in_reply(analyzer: ModelAnalyzer) -> None:
    analyzer._text_program = FakeProgram(reply=None)  # type: ignore[assignment]

    with pytest.raises(AnalysisError):
        analyzer.analyze(_entry(Path("/x/doc_1.pdf")), visual=False)
