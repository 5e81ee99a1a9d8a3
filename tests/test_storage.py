import pytest

from storefront.errors import NotFound, ValidationFailed
from storefront.files import storage


class TestImageFilter:
    @pytest.mark.parametrize("name", ["shoe.jpg", "SHOE.JPEG", "a.b.png", "anim.gif"])
    def test_allowed(self, name):
        assert storage.is_allowed_image(name, "image/whatever")

    @pytest.mark.parametrize("name", ["notes.txt", "noext", "", "shoe.jpg.exe"])
    def test_rejected_extensions(self, name):
        assert not storage.is_allowed_image(name)

    def test_rejects_non_image_content_type(self):
        assert not storage.is_allowed_image("shoe.png", "text/plain")


class TestStore:
    def test_store_and_resolve(self, tmp_path):
        name = storage.store_product_image(str(tmp_path / "imgs"), "Shoe.PNG", b"png-bytes")
        assert name.endswith(".png")
        assert name != "Shoe.PNG"
        path = storage.product_image_path(str(tmp_path / "imgs"), name)
        assert path.read_bytes() == b"png-bytes"

    def test_store_rejects_non_images(self, tmp_path):
        with pytest.raises(ValidationFailed):
            storage.store_product_image(str(tmp_path), "evil.sh", b"#!/bin/sh")

    @pytest.mark.parametrize("name", ["missing.png", "../secret.png", "..", "a/b.png"])
    def test_unknown_or_unsafe_names(self, tmp_path, name):
        (tmp_path / "secret.png").write_bytes(b"x")
        with pytest.raises(NotFound):
            storage.product_image_path(str(tmp_path / "imgs"), name)

    def test_secure_url(self):
        assert storage.secure_url("http://api.local/", "x.png") == "http://api.local/files/product/x.png"
