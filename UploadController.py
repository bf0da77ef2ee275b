import base64
import logging
import os
from io import BytesIO
from typing import Optional, Sequence

from PIL import Image
from pydantic import BaseModel

from PlantIdentifier import PlantIdentifier
from PlantInfo import Failed, IdentificationResult, Identified, PlantInfo, Unrecognized, classify_plant_info

logger = logging.getLogger(__name__)

ACCEPTED_TYPES = {
    "image/jpeg": [".jpeg", ".jpg"],
    "image/jpg": [".jpeg", ".jpg"],
    "image/png": [".png"],
    "image/webp": [".webp"],
}
ACCEPTED_EXTENSIONS = sorted({ext for exts in ACCEPTED_TYPES.values() for ext in exts})

TECHNICAL_ISSUE = "Technical issue occurred during identification"
IDENTIFY_FAILED = "Failed to identify the plant. Please try again."
PROCESSING_FAILED = "An error occurred while processing the image."


class UploadedImage(BaseModel):
    filename: str
    content_type: str
    data: bytes


class ViewState(BaseModel):
    state: str
    image: Optional[str] = None
    loading: bool = False
    result: Optional[IdentificationResult] = None
    error: Optional[str] = None


def is_accepted(upload: UploadedImage) -> bool:
    extensions = ACCEPTED_TYPES.get((upload.content_type or "").lower())
    if extensions is None:
        return False
    return os.path.splitext(upload.filename or "")[1].lower() in extensions


def encode_data_url(upload: UploadedImage) -> str:
    """Read the upload into a data URL usable both as payload and as an <img> src."""
    with Image.open(BytesIO(upload.data)) as img:
        img.verify()
    payload = base64.b64encode(upload.data).decode("ascii")
    return f"data:{upload.content_type};base64,{payload}"


class UploadController:
    def __init__(self, identifier: PlantIdentifier):
        self.identifier = identifier
        self.image: Optional[str] = None
        self.loading = False
        self.result: Optional[IdentificationResult] = None
        self.error: Optional[str] = None

    @property
    def state(self) -> str:
        if self.loading:
            return "loading"
        if self.error is not None:
            return "error"
        if isinstance(self.result, Unrecognized):
            return "unknown"
        if isinstance(self.result, Identified):
            return "success"
        return "idle"

    def view(self) -> ViewState:
        return ViewState(
            state=self.state,
            image=self.image,
            loading=self.loading,
            result=self.result,
            error=self.error,
        )

    def drop(self, uploads: Sequence[UploadedImage]) -> ViewState:
        if not uploads:
            return self.view()
        if self.loading:
            logger.info("Ignoring drop while an identification is in flight")
            return self.view()
        if len(uploads) > 1:
            logger.info("Rejected drop of %d files, only one is accepted", len(uploads))
            return self.view()

        upload = uploads[0]
        if not is_accepted(upload):
            logger.info("Rejected %s (%s)", upload.filename, upload.content_type)
            return self.view()

        self.error = None
        self.result = None
        self.loading = True

        try:
            image = encode_data_url(upload)
        except Exception as e:
            logger.warning("Could not read %s: %s", upload.filename, e)
            self.loading = False
            self.error = PROCESSING_FAILED
            self.result = None
            return self.view()

        self.image = image
        try:
            result = self.identifier.identify(image)
            if isinstance(result, PlantInfo):
                result = classify_plant_info(result)
            if isinstance(result, Failed):
                self.error = TECHNICAL_ISSUE
                self.result = None
            else:
                self.result = result
                self.error = None
        except Exception:
            logger.exception("Identification raised for %s", upload.filename)
            self.error = IDENTIFY_FAILED
            self.result = None
        finally:
            self.loading = False

        logger.debug("Upload %s finished in state %s", upload.filename, self.state)
        return self.view()

    def retry(self) -> ViewState:
        self.image = None
        self.result = None
        self.error = None
        return self.view()
