"""Tests for image candidate ranking and filtering."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from metaprobe.metadata.image_ranker import (
    INLINE_IMAGE_PRIORITY,
    inline_priority,
    is_small_data_uri,
    is_tracking_pixel,
    parse_sizes,
    rank_images,
    screenshot_image,
)
from metaprobe.protocols import ImageSource, ImageType

image_types = st.sampled_from(list(ImageType))
candidates = st.lists(
    st.builds(
        ImageSource,
        url=st.sampled_from([f"https://example.com/{i}.png" for i in range(6)] + [""]),
        type=image_types,
        priority=st.integers(min_value=0, max_value=120),
        width=st.one_of(st.none(), st.integers(min_value=1, max_value=2000)),
        height=st.one_of(st.none(), st.integers(min_value=1, max_value=2000)),
    ),
    max_size=20,
)


@pytest.mark.unit
class TestRankImages:
    @given(candidates)
    def test_sorted_and_unique(self, images):
        ranked = rank_images(images)

        urls = [image.url for image in ranked]
        assert len(urls) == len(set(urls))
        assert "" not in urls
        priorities = [image.priority for image in ranked]
        assert priorities == sorted(priorities, reverse=True)

    @given(candidates)
    def test_each_url_keeps_its_best_priority(self, images):
        ranked = {image.url: image.priority for image in rank_images(images)}
        for image in images:
            if image.url:
                assert ranked[image.url] >= image.priority

    def test_duplicate_borrows_dimensions(self):
        og = ImageSource(url="https://example.com/a.png", type=ImageType.OG_IMAGE, priority=100)
        inline = ImageSource(
            url="https://example.com/a.png", type=ImageType.INLINE, priority=30, width=640, height=480, alt="A"
        )
        (merged,) = rank_images([inline, og])
        assert merged.type is ImageType.OG_IMAGE
        assert (merged.width, merged.height, merged.alt) == (640, 480, "A")

    def test_ties_keep_first_seen_order(self):
        first = ImageSource(url="https://example.com/1.png", type=ImageType.INLINE, priority=30)
        second = ImageSource(url="https://example.com/2.png", type=ImageType.INLINE, priority=30)
        assert rank_images([first, second]) == (first, second)


@pytest.mark.unit
class TestImageFilters:
    @pytest.mark.parametrize(
        "width, height, expected",
        [
            (None, None, INLINE_IMAGE_PRIORITY),
            (100, 100, INLINE_IMAGE_PRIORITY),
            (300, None, INLINE_IMAGE_PRIORITY + 10),
            (None, 200, INLINE_IMAGE_PRIORITY + 10),
            (800, 450, INLINE_IMAGE_PRIORITY + 20),
        ],
    )
    def test_inline_priority(self, width, height, expected):
        assert inline_priority(width, height) == expected

    def test_tracking_pixel(self):
        assert is_tracking_pixel(1, 1)
        assert is_tracking_pixel(None, 0)
        assert not is_tracking_pixel(None, None)
        assert not is_tracking_pixel(2, 2)

    def test_small_data_uri(self):
        assert is_small_data_uri("data:image/png;base64,AAAA", 1024)
        assert not is_small_data_uri("data:image/png;base64," + "A" * 2048, 1024)
        assert not is_small_data_uri("https://example.com/a.png", 1024)

    @pytest.mark.parametrize(
        "sizes, expected",
        [("180x180", (180, 180)), ("16X16 32x32", (16, 16)), ("any", (None, None)), (None, (None, None))],
    )
    def test_parse_sizes(self, sizes, expected):
        assert parse_sizes(sizes) == expected

    def test_screenshot_image(self):
        image = screenshot_image("/screenshots/landing.png", 1280, 720)
        assert image.type is ImageType.SCREENSHOT
        assert image.priority == 10
        assert (image.width, image.height) == (1280, 720)
