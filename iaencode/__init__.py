"""
iaencode: OBJ/MTL -> indexed-array (IA) converter.

This package exposes:
- Core types (AttributeTuple, IndexedArray, IndexedArrayBuilder)
- The IA binary codec (encode_ia / decode_ia, save_ia / load_ia)
- The OBJ conversion entry point (convert_obj)
"""

from .models import AttributeTuple, IndexedArray, MaterialLibrary
from .encoding.builder import IndexedArrayBuilder, build_indexed_array
from .encoding.iaio import encode_ia, decode_ia, save_ia, load_ia
from .encoding.forward import MeshAssembly, assemble_obj, convert_obj
from .errors import (
    ConversionError,
    SourceUnreadable,
    MalformedDirective,
    MissingActiveMaterial,
    AttributeIndexOutOfRange,
    ArtifactUnwritable,
    MalformedArtifact,
)

__all__ = [
    "AttributeTuple",
    "IndexedArray",
    "MaterialLibrary",
    "IndexedArrayBuilder",
    "build_indexed_array",
    "encode_ia",
    "decode_ia",
    "save_ia",
    "load_ia",
    "MeshAssembly",
    "assemble_obj",
    "convert_obj",
    "ConversionError",
    "SourceUnreadable",
    "MalformedDirective",
    "MissingActiveMaterial",
    "AttributeIndexOutOfRange",
    "ArtifactUnwritable",
    "MalformedArtifact",
]

__version__ = "0.1.0"
