"""Tests for sprite frame geometry inference."""

from __future__ import annotations

import pytest

from peglin_entities.sprites.geometry import (
    FactorPair,
    HorizontalStrip,
    SpriteGeometryResolver,
    SquareGrid,
    VerticalStrip,
    divisors,
)
from peglin_entities.sprites.models import SpriteHandle, SpriteRect, SpriteType
from peglin_entities.utils.config import SpriteGeometryConfig


@pytest.fixture
def resolver() -> SpriteGeometryResolver:
    return SpriteGeometryResolver()


def _handle(rect: SpriteRect | None = None, name: str = "sprite") -> SpriteHandle:
    return SpriteHandle(name=name, path_id=11, rect=rect)


class TestIntrinsicRect:
    def test_covering_rect_is_never_an_atlas(self, resolver: SpriteGeometryResolver) -> None:
        rect = SpriteRect(x=0, y=0, width=128, height=32)

        meta = resolver.resolve(_handle(rect), 128, 32, "coin_spin")

        assert meta.is_atlas is False
        assert meta.frame_count == 1
        assert (meta.frame_width, meta.frame_height) == (128, 32)

    def test_small_rect_with_entity_name_is_packed_single(
        self, resolver: SpriteGeometryResolver
    ) -> None:
        rect = SpriteRect(x=32, y=64, width=32, height=32)

        meta = resolver.resolve(_handle(rect), 256, 256, "orb_stone")

        assert meta.is_atlas is True
        assert meta.frame_count == 1
        assert (meta.frame_x, meta.frame_y) == (32, 64)
        assert (meta.frame_width, meta.frame_height) == (32, 32)
        assert meta.atlas_frames[0].sprite_path_id == 11
        assert meta.type == SpriteType.ORB
        assert meta.file_path == "extracted-data/sprites/orbs/orb_stone.png"

    def test_rect_larger_than_texture_is_not_packed_single(
        self, resolver: SpriteGeometryResolver
    ) -> None:
        rect = SpriteRect(x=0, y=0, width=40, height=40)

        meta = resolver.resolve(_handle(rect), 20, 20, "orb_big")

        assert meta.is_atlas is True
        assert meta.frame_count == 4
        assert (meta.frame_width, meta.frame_height) == (20, 20)
        assert all(frame.sprite_path_id == 0 for frame in meta.atlas_frames)

    def test_large_rect_region_runs_detector(self, resolver: SpriteGeometryResolver) -> None:
        rect = SpriteRect(x=0, y=64, width=128, height=32)

        meta = resolver.resolve(_handle(rect), 256, 256, "orb_anim")

        assert meta.is_atlas is True
        assert meta.frame_count == 4
        assert [frame.x for frame in meta.atlas_frames] == [0, 32, 64, 96]
        assert all(frame.y == 64 for frame in meta.atlas_frames)

    def test_region_without_layout_is_one_atlas_frame(
        self, resolver: SpriteGeometryResolver
    ) -> None:
        rect = SpriteRect(x=10, y=10, width=100, height=20)

        meta = resolver.resolve(_handle(rect), 256, 256, "spark")

        assert meta.is_atlas is True
        assert meta.frame_count == 1
        assert (meta.frame_x, meta.frame_y, meta.frame_width, meta.frame_height) == (10, 10, 100, 20)


class TestGenericDetector:
    def test_horizontal_strip(self, resolver: SpriteGeometryResolver) -> None:
        meta = resolver.resolve(_handle(), 128, 32, "coin_spin")

        assert meta.is_atlas is True
        assert (meta.frame_width, meta.frame_height, meta.frame_count) == (32, 32, 4)
        assert [frame.name for frame in meta.atlas_frames] == [
            "coin_spin_frame_00",
            "coin_spin_frame_01",
            "coin_spin_frame_02",
            "coin_spin_frame_03",
        ]
        assert all(frame.pivot_x == 0.5 and frame.pivot_y == 0.5 for frame in meta.atlas_frames)

    def test_vertical_strip(self, resolver: SpriteGeometryResolver) -> None:
        meta = resolver.resolve(_handle(), 32, 128, "coin_drop")

        assert (meta.frame_width, meta.frame_height, meta.frame_count) == (32, 32, 4)
        assert [frame.y for frame in meta.atlas_frames] == [0, 32, 64, 96]

    def test_square_grid_prefers_larger_cells(self, resolver: SpriteGeometryResolver) -> None:
        meta = resolver.resolve(_handle(), 96, 96, "spark")

        assert (meta.frame_width, meta.frame_height, meta.frame_count) == (48, 48, 4)

    def test_three_by_three_grid_drops_last_cell(self, resolver: SpriteGeometryResolver) -> None:
        meta = resolver.resolve(_handle(), 144, 144, "spark")

        assert meta.frame_count == 8
        assert meta.atlas_frames[-1].name == "spark_frame_07"
        assert (meta.atlas_frames[-1].x, meta.atlas_frames[-1].y) == (48, 96)

    def test_three_by_three_rule_can_be_disabled(self) -> None:
        resolver = SpriteGeometryResolver(SpriteGeometryConfig(drop_last_cell_of_3x3=False))

        meta = resolver.resolve(_handle(), 144, 144, "spark")

        assert meta.frame_count == 9

    def test_factor_pair_fallback_picks_squarest_frame(
        self, resolver: SpriteGeometryResolver
    ) -> None:
        meta = resolver.resolve(_handle(), 100, 60, "spark_sheet")

        assert (meta.frame_width, meta.frame_height) == (20, 20)
        assert meta.frame_count == 15

    def test_single_sprite_keyword_skips_detection(self, resolver: SpriteGeometryResolver) -> None:
        meta = resolver.resolve(_handle(), 96, 96, "boulder_sprite")

        assert meta.is_atlas is False
        assert meta.frame_count == 1
        assert meta.atlas_frames == []

    @pytest.mark.parametrize(("width", "height"), [(1024, 32), (24, 24), (600, 600)])
    def test_size_limits_skip_detection(
        self, resolver: SpriteGeometryResolver, width: int, height: int
    ) -> None:
        meta = resolver.resolve(_handle(), width, height, "spark")

        assert meta.is_atlas is False
        assert meta.frame_count == 1
        assert (meta.frame_width, meta.frame_height) == (width, height)

    def test_unusable_size_returns_default(self, resolver: SpriteGeometryResolver) -> None:
        meta = resolver.resolve(_handle(), 0, 32, "spark")

        assert meta.frame_count == 1
        assert meta.is_atlas is False


def test_individual_strategies() -> None:
    config = SpriteGeometryConfig()

    assert HorizontalStrip(config).detect(64, 32) is None
    assert HorizontalStrip(config).detect(96, 32).columns == 3
    assert VerticalStrip(config).detect(16, 16 * 17) is None
    assert SquareGrid(config).detect(64 * 6, 64) is None

    layout = FactorPair(config).detect(100, 60)
    assert layout is not None
    assert (layout.columns, layout.rows) == (5, 3)


def test_divisors() -> None:
    assert divisors(12) == [1, 2, 3, 4, 6, 12]
    assert divisors(16) == [1, 2, 4, 8, 16]
    assert divisors(0) == []
