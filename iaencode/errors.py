from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class ConversionError(Exception):
    """Base class for every fatal conversion failure.

    ``location`` is ``"<path>:<line>"`` when the error can be pinned to a
    source line, otherwise the offending path (or ``None``).
    """

    code = "E-CONVERT"

    def __init__(self, message: str, location: Optional[str] = None):
        super().__init__(message if location is None else f"{location}: {message}")
        self.message = message
        self.location = location

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "location": self.location}


class SourceUnreadable(ConversionError):
    code = "E-SOURCE"


class MalformedDirective(ConversionError):
    code = "E-DIRECTIVE"


class MissingActiveMaterial(ConversionError):
    code = "E-NO-MATERIAL"


class AttributeIndexOutOfRange(ConversionError):
    code = "E-INDEX-RANGE"


class ArtifactUnwritable(ConversionError):
    code = "E-ARTIFACT-WRITE"


class MalformedArtifact(ConversionError):
    code = "E-ARTIFACT-FORMAT"


def line_location(path: Union[str, Path, None], line_no: Optional[int]) -> Optional[str]:
    if path is None:
        return None
    if line_no is None:
        return str(path)
    return f"{path}:{line_no}"


__all__ = [
    "ConversionError",
    "SourceUnreadable",
    "MalformedDirective",
    "MissingActiveMaterial",
    "AttributeIndexOutOfRange",
    "ArtifactUnwritable",
    "MalformedArtifact",
    "line_location",
]
