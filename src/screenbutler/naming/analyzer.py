"""Model-backed filename suggestions built on DSPy.

``ModelAnalyzer`` sends either the image itself (visual mode) or just the
current filename (textual mode) to an OpenAI-compatible model and turns the
reply into a base name. Every failure is raised as ``AnalysisError`` so the
batch pipeline can substitute a local fallback name.
"""

from __future__ import annotations

import base64
import io
import logging
import re
from pathlib import Path

import dspy
from PIL import Image
from pillow_heif import register_heif_opener

from screenbutler.config.credentials import CredentialStore
from screenbutler.config.models import LLMSettings
from screenbutler.ingestion.detectors import SUPPORTED_EXTENSIONS, MediaKind
from screenbutler.ingestion.models import FileEntry

from .base import AnalysisError
from .signatures import ImageFilenameSignature, TextFilenameSignature

LOGGER = logging.getLogger(__name__)

register_heif_opener()

_MAX_IMAGE_EDGE = 1024
_INVALID_FILENAME_CHARACTERS = re.compile(r'[:/\\?%*|"<>]')

IMAGE_PROMPT = (
    "This is an image file named '{filename}'.\n\n"
    "Carefully analyze the image and suggest a clear, descriptive filename that best "
    "represents what this image contains. Be specific but concise.\n\n"
    "Respond ONLY with the suggested filename (without extension)."
)
VIDEO_PROMPT = (
    "Suggest a good filename for a video file called '{filename}'.\n"
    "The video might contain important content that should be reflected in the name.\n"
    "Be specific and descriptive, focusing on the likely subject matter and purpose of "
    "the video.\nReturn only the filename without extension."
)
FILE_PROMPT = (
    "Suggest a good filename for a file called '{filename}' with extension '{extension}'. "
    "Return only the filename without extension. Be concise but descriptive."
)


def clean_model_response(response: str) -> str:
    """Normalize a model reply into a usable base name.

    Strips whitespace and one pair of surrounding quotes, drops any extension
    the model appended, turns spaces into underscores, and removes characters
    that are invalid in filenames.

    Raises:
        AnalysisError: If nothing usable remains.
    """
    cleaned = response.strip()
    if len(cleaned) >= 2 and cleaned.startswith('"') and cleaned.endswith('"'):
        cleaned = cleaned[1:-1]
    if "." in cleaned:
        cleaned = cleaned.rsplit(".", 1)[0]
    cleaned = cleaned.replace(" ", "_")
    cleaned = _INVALID_FILENAME_CHARACTERS.sub("", cleaned)
    if not cleaned:
        raise AnalysisError(f"Model reply {response!r} did not contain a usable filename.")
    return cleaned


def build_prompt(entry: FileEntry, *, visual: bool) -> str:
    """Return the instruction text sent with an analysis request."""
    if visual:
        return IMAGE_PROMPT.format(filename=entry.name)
    if entry.extension in SUPPORTED_EXTENSIONS[MediaKind.VIDEO]:
        return VIDEO_PROMPT.format(filename=entry.name)
    return FILE_PROMPT.format(filename=entry.name, extension=entry.extension)


def encode_image(path: Path, *, max_edge: int = _MAX_IMAGE_EDGE) -> str:
    """Return a JPEG data URI of the image at ``path`` scaled to ``max_edge``.

    Raises:
        AnalysisError: If the image cannot be read or decoded.
    """
    try:
        with Image.open(path) as img:
            frame = img.convert("RGB")
    except OSError as exc:
        raise AnalysisError(f"Could not read image data from {path}: {exc}") from exc

    frame.thumbnail((max_edge, max_edge))
    buffer = io.BytesIO()
    frame.save(buffer, format="JPEG", quality=85)
    payload = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{payload}"


class ModelAnalyzer:
    """Generate rename suggestions with DSPy programs."""

    def __init__(self, settings: LLMSettings, credentials: CredentialStore) -> None:
        """Configure the vision and text language models.

        Args:
            settings: LLM configuration.
            credentials: Source of the provider API key.

        Raises:
            RuntimeError: If no credential is available or DSPy rejects the settings.
        """
        if not credentials.has_credential():
            raise RuntimeError(
                "An API key is required for model suggestions. Set `llm.api_key` or "
                "the OPENAI_API_KEY environment variable."
            )

        self._settings = settings
        api_key = credentials.get_credential()
        try:
            vision_lm = self._build_lm(
                settings.vision_model,
                api_key,
                temperature=settings.vision_temperature,
                max_tokens=settings.vision_max_tokens,
            )
            text_lm = self._build_lm(
                settings.text_model,
                api_key,
                temperature=None,
                max_tokens=settings.text_max_tokens,
            )
        except Exception as exc:  # pragma: no cover - DSPy configuration errors
            raise RuntimeError(
                "Unable to configure the language model. Verify your `llm` settings."
            ) from exc

        self._vision_program = dspy.Predict(ImageFilenameSignature)
        self._vision_program.set_lm(vision_lm)
        self._text_program = dspy.Predict(TextFilenameSignature)
        self._text_program.set_lm(text_lm)

    def analyze(self, entry: FileEntry, *, visual: bool) -> str:
        """Return a suggested base name for ``entry``.

        Args:
            entry: File to analyze.
            visual: Send the image content rather than only the filename.

        Returns:
            str: Cleaned base name without extension.

        Raises:
            AnalysisError: If the request fails or the reply is unusable.
        """
        prompt = build_prompt(entry, visual=visual)
        try:
            if visual:
                image = dspy.Image(url=encode_image(entry.path))
                response = self._vision_program(image=image, prompt=prompt)
            else:
                response = self._text_program(prompt=prompt)
        except AnalysisError:
            raise
        except Exception as exc:
            LOGGER.debug("Model request for %s failed: %s", entry.path, exc)
            raise AnalysisError(f"Model request failed for {entry.name}: {exc}") from exc

        reply = getattr(response, "filename", "") if response is not None else ""
        if not isinstance(reply, str):
            raise AnalysisError(f"Model returned no filename for {entry.name}.")
        return clean_model_response(reply)

    def _build_lm(
        self,
        model: str,
        api_key: str,
        *,
        temperature: float | None,
        max_tokens: int,
    ) -> "dspy.LM":
        provider = self._settings.provider
        qualified = model if "/" in model or not provider else f"{provider}/{model}"
        lm_kwargs: dict[str, object] = {
            "model": qualified,
            "api_key": api_key,
            "max_tokens": max_tokens,
            "timeout": self._settings.request_timeout_seconds,
            "cache": False,
        }
        if temperature is not None:
            lm_kwargs["temperature"] = temperature
        if self._settings.api_base_url:
            lm_kwargs["api_base"] = self._settings.api_base_url
        return dspy.LM(**lm_kwargs)


__all__ = [
    "AnalysisError",
    "ModelAnalyzer",
    "build_prompt",
    "clean_model_response",
    "encode_image",
]
