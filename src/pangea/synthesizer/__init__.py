"""Block synthesizers producing nested documents."""

from .abstract import AbstractSynthesizer, BlockContext, normalize_value
from .terraform import TerraformSynthesizer, interpolation

__all__ = [
    "AbstractSynthesizer",
    "BlockContext",
    "TerraformSynthesizer",
    "interpolation",
    "normalize_value",
]
