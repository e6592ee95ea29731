"""Data model, loading and sample generation."""

from .models import GenerationInput, load_generation_input_from_json
from .loader import DataValidationError, load_school_data, validate_school_data
from .generator import (
    GeneratorConfig,
    generate_sample_school,
    generate_small_school,
    generate_medium_school,
    generate_large_school,
    save_generated_school,
    get_generation_stats,
)

__all__ = [
    # Models
    "GenerationInput",
    "load_generation_input_from_json",
    # Loader
    "DataValidationError",
    "load_school_data",
    "validate_school_data",
    # Generator
    "GeneratorConfig",
    "generate_sample_school",
    "generate_small_school",
    "generate_medium_school",
    "generate_large_school",
    "save_generated_school",
    "get_generation_stats",
]
