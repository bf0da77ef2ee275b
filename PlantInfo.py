from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

IDENTIFICATION_FAILED = "Identification Failed"
UNKNOWN_PLANT = "Unknown Plant"
NOT_AVAILABLE = "N/A"
FALLBACK_DESCRIPTION = "Sorry, we couldn't identify this plant. Please try again with a clearer image."


class CareRequirements(BaseModel):
    water: str = NOT_AVAILABLE
    light: str = NOT_AVAILABLE
    soil: str = NOT_AVAILABLE

    @field_validator("water", "light", "soil", mode="before")
    @classmethod
    def null_is_not_available(cls, value):
        return NOT_AVAILABLE if value is None else value


class PlantInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    scientific_name: str = Field(NOT_AVAILABLE, alias="scientificName")
    category: str = NOT_AVAILABLE
    care_requirements: CareRequirements = Field(default_factory=CareRequirements, alias="careRequirements")
    description: str
    # the prompt historically asked for "Type"
    plant_type: str = Field(
        NOT_AVAILABLE,
        validation_alias=AliasChoices("type", "Type", "plant_type"),
        serialization_alias="type",
    )
    uses: str = NOT_AVAILABLE

    @field_validator("scientific_name", "category", "plant_type", "uses", mode="before")
    @classmethod
    def null_is_not_available(cls, value):
        return NOT_AVAILABLE if value is None else value

    @field_validator("care_requirements", mode="before")
    @classmethod
    def null_care_requirements(cls, value):
        return CareRequirements() if value is None else value

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)


def fallback_plant_info() -> PlantInfo:
    return PlantInfo(
        name=IDENTIFICATION_FAILED,
        scientific_name=NOT_AVAILABLE,
        category=NOT_AVAILABLE,
        care_requirements=CareRequirements(),
        description=FALLBACK_DESCRIPTION,
        plant_type=NOT_AVAILABLE,
        uses=NOT_AVAILABLE,
    )


class FailureKind(str, Enum):
    MISSING_API_KEY = "missing_api_key"
    INVALID_IMAGE = "invalid_image"
    REQUEST_FAILED = "request_failed"
    NO_JSON = "no_json"
    INVALID_JSON = "invalid_json"
    INVALID_SCHEMA = "invalid_schema"


class Identified(BaseModel):
    status: Literal["identified"] = "identified"
    plant: PlantInfo

    def as_plant_info(self) -> PlantInfo:
        return self.plant


class Unrecognized(BaseModel):
    """The service answered but could not tell what the subject is.

    `description` carries the model's photography guidance.
    """

    status: Literal["unrecognized"] = "unrecognized"
    description: str
    plant: PlantInfo

    def as_plant_info(self) -> PlantInfo:
        return self.plant


class Failed(BaseModel):
    status: Literal["failed"] = "failed"
    kind: FailureKind
    reason: str

    def as_plant_info(self) -> PlantInfo:
        return fallback_plant_info()


IdentificationResult = Annotated[Union[Identified, Unrecognized, Failed], Field(discriminator="status")]


def classify_plant_info(info: PlantInfo) -> IdentificationResult:
    """Map a sentinel-style PlantInfo onto the tagged result."""
    if info.name == IDENTIFICATION_FAILED:
        return Failed(kind=FailureKind.INVALID_SCHEMA, reason="response carried the failure sentinel")
    if info.name == UNKNOWN_PLANT:
        return Unrecognized(description=info.description, plant=info)
    return Identified(plant=info)
