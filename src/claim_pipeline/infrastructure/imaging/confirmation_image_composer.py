"""Confirmation image composition with a metadata footer overlay."""

from __future__ import annotations

import logging
import shutil
from datetime import UTC, datetime
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from claim_pipeline.domain.entities import ConfirmationRequest
from claim_pipeline.domain.ports import ConfirmationComposer

logger = logging.getLogger(__name__)

PLACEHOLDER_SIZE = (800, 600)
FOOTER_HEIGHT = 120
TITLE_TEXT = "8 BALL POOL REWARD CLAIMED"
ALREADY_CLAIMED_TEXT = "Status: Already claimed today / no new items"

_GRADIENT_TOP = (0x1A, 0x1A, 0x2E)
_GRADIENT_BOTTOM = (0x16, 0x21, 0x3E)
_FOOTER_FILL = (0, 0, 0, 204)
_BORDER_COLOR = (0xFF, 0xD7, 0x00, 255)
_TEXT_COLOR = (0xFF, 0xFF, 0xFF, 255)
_BORDER_WIDTH = 3

# (text offset from footer top, font size, color)
_LINE_LAYOUT = (
    (25, 24, _TEXT_COLOR),
    (55, 28, _BORDER_COLOR),
    (80, 18, _TEXT_COLOR),
    (100, 18, _TEXT_COLOR),
)


def footer_lines(request: ConfirmationRequest) -> list[str]:
    """Return footer text lines, top to bottom."""

    if request.claimed_items:
        status_line = f"Claimed: {', '.join(request.claimed_items)}"
    else:
        status_line = ALREADY_CLAIMED_TEXT
    return [
        TITLE_TEXT,
        f"Account ID: {request.account_id}",
        f"User: {request.username}",
        status_line,
    ]


def confirmation_filename(account_id: str, now: datetime | None = None) -> str:
    """Build `confirmation-<accountId>-<timestamp>.png` with ':' and '.' made safe."""

    moment = (now or datetime.now(tz=UTC)).astimezone(UTC)
    timestamp = moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
    safe_timestamp = timestamp.replace(":", "-").replace(".", "-")
    return f"confirmation-{account_id}-{safe_timestamp}.png"


class ConfirmationImageComposer(ConfirmationComposer):
    """Render claim metadata onto a screenshot or a gradient placeholder."""

    def __init__(self, output_dir: str | Path) -> None:
        self._output_dir = Path(output_dir)

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def compose(self, request: ConfirmationRequest) -> str | None:
        """Write a new confirmation image; never raises."""

        try:
            output_path = self._new_output_path(request.account_id)
            image = self._render(request)
            image.convert("RGB").save(output_path, format="PNG")
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Confirmation image composition failed for account %s: %s",
                request.account_id,
                exc,
            )
            return self._fallback_copy(request)

        logger.info("Composed confirmation image %s.", output_path.name)
        return str(output_path)

    def _render(self, request: ConfirmationRequest) -> Image.Image:
        background = self._background(request.screenshot_path)
        width, height = background.size
        footer_top = max(height - FOOTER_HEIGHT, 0)

        overlay = Image.new("RGBA", background.size, (0, 0, 0, 0))
        overlay_draw = ImageDraw.Draw(overlay)
        overlay_draw.rectangle((0, footer_top, width - 1, height - 1), fill=_FOOTER_FILL)
        image = Image.alpha_composite(background, overlay)

        draw = ImageDraw.Draw(image)
        draw.rectangle(
            (0, footer_top, width - 1, height - 1),
            outline=_BORDER_COLOR,
            width=_BORDER_WIDTH,
        )
        for text, (offset, size, color) in zip(footer_lines(request), _LINE_LAYOUT, strict=True):
            font = ImageFont.load_default(size=size)
            left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
            x = (width - (right - left)) / 2 - left
            y = footer_top + offset - (bottom - top) / 2 - top
            draw.text((x, y), text, font=font, fill=color)
        return image

    def _background(self, screenshot_path: str | None) -> Image.Image:
        if screenshot_path and Path(screenshot_path).is_file():
            try:
                with Image.open(screenshot_path) as screenshot:
                    return screenshot.convert("RGBA")
            except OSError as exc:
                logger.warning(
                    "Could not load screenshot %s, using placeholder: %s",
                    screenshot_path,
                    exc,
                )
        return self._gradient_placeholder()

    def _gradient_placeholder(self) -> Image.Image:
        width, height = PLACEHOLDER_SIZE
        image = Image.new("RGBA", PLACEHOLDER_SIZE)
        draw = ImageDraw.Draw(image)
        for y in range(height):
            ratio = y / max(height - 1, 1)
            color = tuple(
                round(start + (end - start) * ratio)
                for start, end in zip(_GRADIENT_TOP, _GRADIENT_BOTTOM, strict=True)
            )
            draw.line([(0, y), (width, y)], fill=(*color, 255))
        return image

    def _fallback_copy(self, request: ConfirmationRequest) -> str | None:
        screenshot_path = request.screenshot_path
        if not screenshot_path or not Path(screenshot_path).is_file():
            return None
        try:
            suffix = Path(screenshot_path).suffix.lower() or ".png"
            output_path = self._new_output_path(request.account_id, suffix)
            shutil.copyfile(screenshot_path, output_path)
        except OSError as exc:
            logger.warning(
                "Fallback screenshot copy failed for account %s: %s",
                request.account_id,
                exc,
            )
            return None
        logger.info("Created fallback confirmation image %s.", output_path.name)
        return str(output_path)

    def _new_output_path(self, account_id: str, suffix: str = ".png") -> Path:
        self._output_dir.mkdir(parents=True, exist_ok=True)
        candidate = (self._output_dir / confirmation_filename(account_id)).with_suffix(suffix)
        counter = 1
        while candidate.exists():
            stem = candidate.stem.rsplit("~", 1)[0]
            candidate = candidate.with_name(f"{stem}~{counter}{suffix}")
            counter += 1
        return candidate


__all__ = [
    "ALREADY_CLAIMED_TEXT",
    "ConfirmationImageComposer",
    "PLACEHOLDER_SIZE",
    "TITLE_TEXT",
    "confirmation_filename",
    "footer_lines",
]
