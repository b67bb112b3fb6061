"""Patch discovery, extraction and application."""

from firmpatch.patch.apply import (
    apply_patches,
    verify_patches,
    validate_patches,
    write_patch_report,
    format_patch_report,
)
from firmpatch.patch.extract import extract_patches, extract_patch_data
from firmpatch.patch.sections import (
    PatchSection,
    resolve_target_address,
    identify_patch_sections,
)

__all__ = [
    "PatchSection",
    "apply_patches",
    "extract_patch_data",
    "extract_patches",
    "format_patch_report",
    "identify_patch_sections",
    "resolve_target_address",
    "validate_patches",
    "verify_patches",
    "write_patch_report",
]
