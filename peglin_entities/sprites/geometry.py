"""Frame geometry inference for sprites, sprite sheets and atlases.

The resolver never fails: whatever cannot be laid out as a strip or grid is reported
as one frame covering the region.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Protocol, Sequence, Tuple

from loguru import logger

from peglin_entities.sprites.models import (
    SpriteFrame,
    SpriteHandle,
    SpriteMetadata,
    SpriteRect,
    SpriteType,
)
from peglin_entities.sprites.naming import generate_sprite_id, infer_sprite_type, sprite_file_path
from peglin_entities.utils.config import SpriteGeometryConfig


@dataclass(frozen=True)
class FrameLayout:
    strategy: str
    frame_width: int
    frame_height: int
    columns: int
    rows: int

    @property
    def cell_count(self) -> int:
        return self.columns * self.rows


class LayoutStrategy(Protocol):
    name: str

    def detect(self, width: int, height: int) -> FrameLayout | None: ...


class HorizontalStrip:
    """One row of square frames whose side is a candidate size."""

    name = "horizontal_strip"

    def __init__(self, config: SpriteGeometryConfig) -> None:
        self.config = config

    def detect(self, width: int, height: int) -> FrameLayout | None:
        for size in self.config.candidate_frame_sizes:
            if height != size or width % size != 0:
                continue
            columns = width // size
            if self.config.strip_min_frames <= columns <= self.config.strip_max_frames:
                return FrameLayout(self.name, size, size, columns, 1)
        return None


class VerticalStrip:
    """One column of square frames whose side is a candidate size."""

    name = "vertical_strip"

    def __init__(self, config: SpriteGeometryConfig) -> None:
        self.config = config

    def detect(self, width: int, height: int) -> FrameLayout | None:
        for size in self.config.candidate_frame_sizes:
            if width != size or height % size != 0:
                continue
            rows = height // size
            if self.config.strip_min_frames <= rows <= self.config.strip_max_frames:
                return FrameLayout(self.name, size, size, 1, rows)
        return None


class SquareGrid:
    """Square cells of one candidate size tiling both dimensions; larger cells first."""

    name = "square_grid"

    def __init__(self, config: SpriteGeometryConfig) -> None:
        self.config = config

    def detect(self, width: int, height: int) -> FrameLayout | None:
        cfg = self.config
        for size in sorted(cfg.candidate_frame_sizes, reverse=True):
            if width % size != 0 or height % size != 0:
                continue
            columns, rows = width // size, height // size
            if not cfg.grid_min_frames <= columns * rows <= cfg.grid_max_frames:
                continue
            if not (
                cfg.grid_min_side <= columns <= cfg.grid_max_side
                and cfg.grid_min_side <= rows <= cfg.grid_max_side
            ):
                continue
            return FrameLayout(self.name, size, size, columns, rows)
        return None


def divisors(number: int) -> List[int]:
    """All positive divisors of ``number`` in ascending order."""
    if number <= 0:
        return []
    small: List[int] = []
    large: List[int] = []
    candidate = 1
    while candidate * candidate <= number:
        if number % candidate == 0:
            small.append(candidate)
            if candidate != number // candidate:
                large.append(number // candidate)
        candidate += 1
    return small + large[::-1]


class FactorPair:
    """Any (columns, rows) divisor pair giving bounded frames; the squarest frame wins."""

    name = "factor_pair"

    def __init__(self, config: SpriteGeometryConfig) -> None:
        self.config = config

    def candidates(self, width: int, height: int) -> List[FrameLayout]:
        cfg = self.config
        found: List[FrameLayout] = []
        for columns in divisors(width):
            for rows in divisors(height):
                if columns < cfg.factor_min_side or rows < cfg.factor_min_side:
                    continue
                if not cfg.factor_min_frames <= columns * rows <= cfg.factor_max_frames:
                    continue
                frame_width, frame_height = width // columns, height // rows
                if not (
                    cfg.factor_min_frame_size <= frame_width <= cfg.factor_max_frame_size
                    and cfg.factor_min_frame_size <= frame_height <= cfg.factor_max_frame_size
                ):
                    continue
                found.append(FrameLayout(self.name, frame_width, frame_height, columns, rows))
        return found

    def detect(self, width: int, height: int) -> FrameLayout | None:
        found = self.candidates(width, height)
        if not found:
            return None
        # min() keeps the first of equally square candidates
        return min(found, key=_squareness)


def _squareness(layout: FrameLayout) -> float:
    longer = max(layout.frame_width, layout.frame_height)
    shorter = min(layout.frame_width, layout.frame_height)
    return longer / shorter


def default_strategies(config: SpriteGeometryConfig) -> List[LayoutStrategy]:
    return [
        HorizontalStrip(config),
        VerticalStrip(config),
        SquareGrid(config),
        FactorPair(config),
    ]


class SpriteGeometryResolver:
    """Infer single-sprite versus atlas-frame layout for a sprite or texture handle."""

    def __init__(
        self,
        config: SpriteGeometryConfig | None = None,
        strategies: Sequence[LayoutStrategy] | None = None,
    ) -> None:
        self.config = config or SpriteGeometryConfig()
        self.strategies: List[LayoutStrategy] = list(
            strategies if strategies is not None else default_strategies(self.config)
        )

    # Generic detector
    def is_likely_single_sprite(self, name: str) -> bool:
        lowered = (name or "").lower()
        return any(keyword in lowered for keyword in self.config.single_sprite_keywords)

    def detect_layout(self, name: str, width: int, height: int) -> FrameLayout | None:
        """Run the strip/grid/factor detectors unless a skip rule applies."""
        cfg = self.config
        if width > cfg.max_detect_dimension or height > cfg.max_detect_dimension:
            logger.debug("Skipping frame detection for {}: {}x{} too large", name, width, height)
            return None
        if width < cfg.min_detect_dimension or height < cfg.min_detect_dimension:
            logger.debug("Skipping frame detection for {}: {}x{} too small", name, width, height)
            return None
        if self.is_likely_single_sprite(name):
            logger.debug("Skipping frame detection for {}: single-sprite name", name)
            return None

        for strategy in self.strategies:
            layout = strategy.detect(width, height)
            if layout is not None:
                logger.debug(
                    "Detected {} for {} ({}x{}): {}x{} frames of {}x{}",
                    layout.strategy,
                    name,
                    width,
                    height,
                    layout.columns,
                    layout.rows,
                    layout.frame_width,
                    layout.frame_height,
                )
                return layout
        return None

    def generate_frames(
        self, name: str, layout: FrameLayout, origin: Tuple[int, int] = (0, 0)
    ) -> List[SpriteFrame]:
        """One frame per cell in row-major order; a 3x3 grid loses its last cell."""
        pivot = self.config.default_pivot
        drop_last = self.config.drop_last_cell_of_3x3 and layout.columns == 3 and layout.rows == 3

        frames: List[SpriteFrame] = []
        offset_x, offset_y = origin
        for row in range(layout.rows):
            for column in range(layout.columns):
                index = row * layout.columns + column
                if drop_last and index == layout.cell_count - 1:
                    continue
                frames.append(
                    SpriteFrame(
                        name=f"{name}_frame_{index:02d}",
                        x=offset_x + column * layout.frame_width,
                        y=offset_y + row * layout.frame_height,
                        width=layout.frame_width,
                        height=layout.frame_height,
                        pivot_x=pivot,
                        pivot_y=pivot,
                    )
                )
        return frames

    # Resolution rules
    def resolve(
        self,
        handle: SpriteHandle,
        pixel_width: int,
        pixel_height: int,
        source_name: str,
        sprite_type: SpriteType | None = None,
    ) -> SpriteMetadata:
        """Describe the frame geometry of ``handle`` over a ``pixel_width`` x ``pixel_height`` texture."""
        metadata = self._single_frame(handle, pixel_width, pixel_height, source_name, sprite_type)
        if pixel_width <= 0 or pixel_height <= 0:
            logger.warning(
                "Texture for {} has no usable size ({}x{})", source_name, pixel_width, pixel_height
            )
            return metadata

        try:
            rect = handle.rect
            if rect is None:
                return self._resolve_texture(metadata, source_name, pixel_width, pixel_height)
            if rect.covers(pixel_width, pixel_height):
                return metadata
            if self._is_packed_single_sprite(rect, pixel_width, pixel_height, source_name):
                return self._packed_single(metadata, rect, handle)
            return self._resolve_region(metadata, rect, source_name)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Falling back to single frame for {}: {}", source_name, exc)
            return self._single_frame(handle, pixel_width, pixel_height, source_name, sprite_type)

    def _is_packed_single_sprite(
        self, rect: SpriteRect, pixel_width: int, pixel_height: int, source_name: str
    ) -> bool:
        if rect.width > pixel_width or rect.height > pixel_height:
            return False
        if rect.width == pixel_width and rect.height == pixel_height:
            return False
        limit = self.config.packed_sprite_max_size
        if rect.width > limit or rect.height > limit:
            return False
        lowered = (source_name or "").lower()
        return any(keyword in lowered for keyword in self.config.packed_sprite_keywords)

    def _single_frame(
        self,
        handle: SpriteHandle,
        width: int,
        height: int,
        source_name: str,
        sprite_type: SpriteType | None,
    ) -> SpriteMetadata:
        name = source_name or handle.name
        resolved_type = sprite_type or infer_sprite_type(name)
        sprite_id = generate_sprite_id(name)
        return SpriteMetadata(
            id=sprite_id,
            name=name,
            type=resolved_type,
            file_path=sprite_file_path(sprite_id, resolved_type),
            width=width,
            height=height,
            frame_width=width,
            frame_height=height,
            frame_count=1,
            is_atlas=False,
        )

    def _packed_single(
        self, metadata: SpriteMetadata, rect: SpriteRect, handle: SpriteHandle
    ) -> SpriteMetadata:
        frame = SpriteFrame(
            name=metadata.name,
            x=rect.x,
            y=rect.y,
            width=rect.width,
            height=rect.height,
            pivot_x=self.config.default_pivot,
            pivot_y=self.config.default_pivot,
            sprite_path_id=handle.path_id,
        )
        return metadata.model_copy(
            update={
                "frame_x": rect.x,
                "frame_y": rect.y,
                "frame_width": rect.width,
                "frame_height": rect.height,
                "frame_count": 1,
                "is_atlas": True,
                "atlas_frames": [frame],
            }
        )

    def _resolve_region(
        self, metadata: SpriteMetadata, rect: SpriteRect, source_name: str
    ) -> SpriteMetadata:
        layout = self.detect_layout(source_name, rect.width, rect.height)
        if layout is None:
            frames = [
                SpriteFrame(
                    name=metadata.name,
                    x=rect.x,
                    y=rect.y,
                    width=rect.width,
                    height=rect.height,
                    pivot_x=self.config.default_pivot,
                    pivot_y=self.config.default_pivot,
                )
            ]
            frame_width, frame_height = rect.width, rect.height
        else:
            frames = self.generate_frames(metadata.name, layout, origin=(rect.x, rect.y))
            frame_width, frame_height = layout.frame_width, layout.frame_height

        return metadata.model_copy(
            update={
                "frame_x": rect.x,
                "frame_y": rect.y,
                "frame_width": frame_width,
                "frame_height": frame_height,
                "frame_count": len(frames),
                "is_atlas": True,
                "atlas_frames": frames,
            }
        )

    def _resolve_texture(
        self, metadata: SpriteMetadata, source_name: str, width: int, height: int
    ) -> SpriteMetadata:
        layout = self.detect_layout(source_name, width, height)
        if layout is None:
            return metadata

        frames = self.generate_frames(metadata.name, layout)
        return metadata.model_copy(
            update={
                "frame_width": layout.frame_width,
                "frame_height": layout.frame_height,
                "frame_count": len(frames),
                "is_atlas": len(frames) > 1,
                "atlas_frames": frames,
            }
        )
