"""
Tests for the ImageAuditor.
"""

import pytest

from conftest import FakeElement, FakePage, product_document

from storeprobe.core.image_auditor import ImageAuditor, background_image_url

URL = "https://shop.test/products/tee"


@pytest.mark.parametrize(
    "style,expected",
    [
        ("background-image: url('https://x/y.png')", "https://x/y.png"),
        ('color: red; background-image:url("/img/hero.jpg");', "/img/hero.jpg"),
        ("background-image: url(banner.webp)", "banner.webp"),
        ("color: red", None),
        (None, None),
    ],
)
def test_background_image_url(style, expected):
    """Test the url() value is pulled out of inline styles."""
    assert background_image_url(style) == expected


class TestImageAuditor:
    """Tests for auditing page images."""

    @pytest.mark.asyncio
    async def test_records_visible_and_hidden_images(self, no_delays):
        """Test visible, hidden and background images are recorded."""
        images = [
            FakeElement(attrs={"src": "/cdn/tee.jpg", "alt": "Front"}, bbox={"width": 640, "height": 480}),
            FakeElement(attrs={"data-src": "https://cdn.test/lazy.jpg"}, visible=False),
            FakeElement(attrs={"style": "background-image: url('https://x/y.png')"}, bbox={"width": 10, "height": 5}),
            FakeElement(attrs={"style": "background-image: none"}),
        ]
        page = FakePage({URL: product_document(images=images)})

        records = await ImageAuditor(timings=no_delays).audit(page, [URL])

        assert [record.src for record in records] == [
            "https://shop.test/cdn/tee.jpg",
            "https://cdn.test/lazy.jpg",
            "https://x/y.png",
        ]
        assert records[0].loaded is True
        assert records[0].alt_text == "Front"
        assert (records[0].width, records[0].height) == (640, 480)
        assert records[1].loaded is False
        assert records[1].width == 0
        assert records[2].loaded is True
        assert all(record.page_url == URL for record in records)

    @pytest.mark.asyncio
    async def test_unreachable_page_is_skipped(self, no_delays):
        """Test an unreachable page is skipped and the next is audited."""
        other = "https://shop.test/products/mug"
        images = [FakeElement(attrs={"src": "https://cdn.test/mug.jpg"}, bbox={"width": 1, "height": 1})]
        page = FakePage({other: product_document(images=images)}, unreachable={URL})

        records = await ImageAuditor(timings=no_delays).audit(page, [URL, other])

        assert len(records) == 1
        assert records[0].page_url == other
        assert page.visited == [URL, other]

    @pytest.mark.asyncio
    async def test_failing_image_is_recorded_and_audit_continues(self, no_delays):
        """Test an image whose visibility check raises keeps its error and later images."""
        images = [
            FakeElement(attrs={"src": "/a.jpg"}, visibility_error="detached"),
            FakeElement(attrs={"src": "/b.jpg"}, bbox={"width": 300, "height": 300}),
        ]
        page = FakePage({URL: product_document(images=images)})

        records = await ImageAuditor(timings=no_delays).audit(page, [URL])

        assert [record.src for record in records] == ["https://shop.test/a.jpg", "https://shop.test/b.jpg"]
        assert records[0].errors == ["detached"]
        assert records[0].loaded is False
        assert records[1].loaded is True
        assert records[1].errors == []
