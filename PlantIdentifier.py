# identifier.py
import base64
import binascii
import json
import logging
import re
from typing import Optional, Protocol, Tuple

from openai import OpenAI
from pydantic import ValidationError

from PlantInfo import (
    Failed,
    FailureKind,
    IdentificationResult,
    PlantInfo,
    classify_plant_info,
)

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"

IDENTIFICATION_PROMPT = """
You are a world-class botanist and horticulturist.
I'm sending you an image of a plant. Please identify it and provide the following information:
1. Common name
2. Scientific name
3. Plant category (e.g., succulent, flowering plant, tree, etc.)
4. Care requirements (water, light, soil)
5. Brief description
6. Whether it is poisonous or not
7. Whether it can be used for home decoration, and its benefits if so (looks good, more oxygen supply, etc.)

If the image does not show a plant you can recognise, set "name" to "Unknown Plant"
and use "description" to explain how to take a better photo.

Format your response as a JSON object with the following structure:
{
  "name": "Common Name",
  "scientificName": "Scientific Name",
  "category": "Plant Category",
  "careRequirements": {
    "water": "Water requirements",
    "light": "Light requirements",
    "soil": "Soil requirements"
  },
  "description": "Brief description",
  "type": "Poisonous or Non-poisonous",
  "uses": "Decorative uses and their benefits"
}
"""

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_DATA_URL_MIME = re.compile(r"^data:([\w.+-]+/[\w.+-]+)")


class InferenceBackend(Protocol):
    def generate(self, prompt: str, image_base64: str, mime_type: str) -> str:
        ...


class OpenAIVisionBackend:
    """Multimodal chat completion: one text part plus one inline image."""

    def __init__(self, api_key: str, model: str = "gpt-4.1", client: Optional[OpenAI] = None):
        self.client = client or OpenAI(api_key=api_key)
        self.model = model

    def generate(self, prompt: str, image_base64: str, mime_type: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": "You identify plants and answer with structured plant data."},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{mime_type};base64,{image_base64}"},
                        },
                    ],
                },
            ],
            response_format={"type": "json_object"},
        )
        return response.choices[0].message.content or ""


def split_data_url(image: str) -> Tuple[str, str]:
    """Return (mime_type, base64 payload) for a data URL or a bare payload."""
    if "," not in image:
        return DEFAULT_MIME_TYPE, image
    prefix, payload = image.split(",", 1)
    match = _DATA_URL_MIME.match(prefix)
    return (match.group(1) if match else DEFAULT_MIME_TYPE), payload


def extract_json_object(text: str) -> Optional[str]:
    match = _JSON_OBJECT.search(text or "")
    return match.group(0) if match else None


class PlantIdentifier:
    def __init__(self, backend: Optional[InferenceBackend], prompt: str = IDENTIFICATION_PROMPT):
        self.backend = backend
        self.prompt = prompt

    @property
    def configured(self) -> bool:
        return self.backend is not None

    def _fail(self, kind: FailureKind, reason: str) -> Failed:
        logger.warning("Plant identification failed (%s): %s", kind.value, reason)
        return Failed(kind=kind, reason=reason)

    def identify(self, image: str) -> IdentificationResult:
        """Identify the plant in `image`, a data URL or bare base64 string.

        Never raises: every failure comes back as a `Failed` result.
        """
        try:
            return self._identify(image)
        except Exception as e:
            logger.exception("Unexpected error identifying plant")
            return Failed(kind=FailureKind.REQUEST_FAILED, reason=str(e))

    def _identify(self, image: str) -> IdentificationResult:
        if self.backend is None:
            return self._fail(FailureKind.MISSING_API_KEY, "no inference API key configured")

        mime_type, payload = split_data_url(image)
        try:
            base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            return self._fail(FailureKind.INVALID_IMAGE, f"payload is not valid base64: {e}")
        if not payload:
            return self._fail(FailureKind.INVALID_IMAGE, "empty image payload")

        try:
            text = self.backend.generate(self.prompt, payload, mime_type)
        except Exception as e:
            return self._fail(FailureKind.REQUEST_FAILED, f"{type(e).__name__}: {e}")

        raw_json = extract_json_object(text)
        if raw_json is None:
            return self._fail(FailureKind.NO_JSON, "no JSON object in response")

        try:
            data = json.loads(raw_json)
        except json.JSONDecodeError as e:
            return self._fail(FailureKind.INVALID_JSON, str(e))

        try:
            info = PlantInfo.model_validate(data)
        except ValidationError as e:
            return self._fail(FailureKind.INVALID_SCHEMA, str(e))

        result = classify_plant_info(info)
        if isinstance(result, Failed):
            return self._fail(result.kind, result.reason)
        logger.info("Plant identification finished: %s (%s)", result.status, info.name)
        return result

    def identify_plant(self, image: str) -> PlantInfo:
        """Sentinel-style variant: the fallback PlantInfo stands in for any failure."""
        return self.identify(image).as_plant_info()
