"""Confirmation image adapters."""

from claim_pipeline.infrastructure.imaging.confirmation_image_composer import (
    ConfirmationImageComposer,
    confirmation_filename,
    footer_lines,
)

__all__ = ["ConfirmationImageComposer", "confirmation_filename", "footer_lines"]
