import base64
import enum
import unicodedata
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _normalize(text: str) -> str:
    """Lowercase and strip accents so 'Orgánicos' and 'organicos' compare equal."""
    decomposed = unicodedata.normalize('NFKD', text or '')
    return ''.join(c for c in decomposed if not unicodedata.combining(c)).lower().strip()


class Container(enum.Enum):
    """The three household recycling bins used in Colombia."""
    BLANCO = ("Blanco", "Blanco (Aprovechables)", "white")
    NEGRO = ("Negro", "Negro (No Aprovechables)", "black")
    VERDE = ("Verde", "Verde (Orgánicos)", "green")

    def __init__(self, option, label, english):
        self.option = option
        self.label = label
        self.english = english

    @classmethod
    def from_text(cls, text: Optional[str]) -> Optional['Container']:
        """
        Resolve a bare colour word, a canonical label or a label surrounded by
        prose to a bin. Returns None when zero or several bins are mentioned.
        """
        normalized = _normalize(text or '')
        if not normalized:
            return None
        mentioned = [m for m in cls if _normalize(m.option) in normalized or m.english in normalized]
        if len(mentioned) == 1:
            return mentioned[0]
        return None


class Confidence(enum.IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @property
    def label(self) -> str:
        return {Confidence.LOW: "Baja", Confidence.MEDIUM: "Media", Confidence.HIGH: "Alta"}[self]

    @classmethod
    def from_text(cls, text: Optional[str]) -> 'Confidence':
        normalized = _normalize(str(text or ''))
        if normalized.startswith(('alta', 'high')):
            return cls.HIGH
        if normalized.startswith(('media', 'medium')):
            return cls.MEDIUM
        # Anything the model could not commit to is treated as low confidence.
        return cls.LOW


class ClassificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    container: Container
    confidence: Confidence
    object_name: str = Field(min_length=1)
    reason: str = ""

    @field_validator('container', mode='before')
    @classmethod
    def _resolve_container(cls, value):
        if isinstance(value, Container):
            return value
        resolved = Container.from_text(value)
        if resolved is None:
            raise ValueError(f"Unknown container: {value!r}")
        return resolved

    @field_validator('confidence', mode='before')
    @classmethod
    def _resolve_confidence(cls, value):
        if isinstance(value, Confidence):
            return value
        return Confidence.from_text(value)

    @field_validator('object_name', 'reason', mode='before')
    @classmethod
    def _strip(cls, value):
        return (value or '').strip() if isinstance(value, str) or value is None else value

    def to_api(self) -> dict:
        """Wire format consumed by the frontend results panel."""
        return {
            "container": self.container.label,
            "details": {
                "confidence": self.confidence.label,
                "objectName": self.object_name,
                "reason": self.reason,
            }
        }


class QuizItem(BaseModel):
    name: str = Field(min_length=1)
    container: str
    justification: str = ""
    image_prompt: str = Field(min_length=1)

    @field_validator('container', mode='before')
    @classmethod
    def _canonical_container(cls, value):
        resolved = Container.from_text(value)
        if resolved is None:
            raise ValueError(f"Unknown container: {value!r}")
        return resolved.label


class GeneratedImage(BaseModel):
    data: bytes
    mime_type: str = "image/png"

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode('ascii')
        return f"data:{self.mime_type};base64,{encoded}"


class QuizQuestion(BaseModel):
    image_url: str
    waste_name: str
    correct_container: str
    justification: str = ""

    def to_api(self) -> dict:
        return {
            "imageUrl": self.image_url,
            "wasteName": self.waste_name,
            "correctContainer": self.correct_container,
            "justification": self.justification,
        }


class Tip(BaseModel):
    text: str = Field(min_length=1)

    def to_api(self) -> dict:
        return {"tip": self.text}
