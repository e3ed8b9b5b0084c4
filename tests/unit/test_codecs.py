import subprocess
from unittest.mock import MagicMock, patch

from PIL import Image, ImageCms

from conftest import make_jpeg, make_transparent_png
from webpify.services.codecs import CodecBackend, ImageMagickBackend, PillowBackend, default_backends


def test_default_chain_prefers_imagemagick(settings):
    backends = default_backends(settings)

    assert [b.name for b in backends] == ["imagemagick", "pillow"]
    assert all(isinstance(b, CodecBackend) for b in backends)


def test_imagemagick_command_strips_metadata(settings, tmp_path):
    backend = ImageMagickBackend(settings)
    with patch("webpify.services.codecs.shutil.which", return_value="/usr/bin/magick"):
        cmd = backend.build_command(tmp_path / "a.jpg", tmp_path / "a.webp", 85)

    assert cmd[0] == "magick"
    assert "-strip" in cmd
    assert cmd[cmd.index("-quality") + 1] == "85"
    assert cmd[-1] == f"webp:{tmp_path / 'a.webp'}"


def test_imagemagick_falls_back_to_convert(settings, tmp_path):
    backend = ImageMagickBackend(settings)
    result = MagicMock(returncode=0, stderr="")
    installed = {"convert": "/usr/bin/convert"}
    with patch("webpify.services.codecs.shutil.which", side_effect=installed.get), patch(
        "webpify.services.codecs.subprocess.run", return_value=result
    ) as run:
        assert backend.is_available()
        assert backend.encode(tmp_path / "a.jpg", tmp_path / "a.webp", 80)

    assert run.call_args.args[0][0] == "convert"


def test_imagemagick_unavailable_without_binary(settings, tmp_path):
    backend = ImageMagickBackend(settings)
    with patch("webpify.services.codecs.shutil.which", return_value=None), patch(
        "webpify.services.codecs.subprocess.run"
    ) as run:
        assert not backend.is_available()
        assert not backend.encode(tmp_path / "a.jpg", tmp_path / "a.webp", 80)
    run.assert_not_called()


def test_imagemagick_nonzero_exit_is_failure(settings, tmp_path):
    backend = ImageMagickBackend(settings)
    result = MagicMock(returncode=1, stderr="no decode delegate")
    with patch("webpify.services.codecs.shutil.which", return_value="/usr/bin/magick"), patch(
        "webpify.services.codecs.subprocess.run", return_value=result
    ):
        assert not backend.encode(tmp_path / "a.jpg", tmp_path / "a.webp", 80)


def test_imagemagick_timeout_is_failure(settings, tmp_path):
    backend = ImageMagickBackend(settings)
    with patch("webpify.services.codecs.shutil.which", return_value="/usr/bin/magick"), patch(
        "webpify.services.codecs.subprocess.run",
        side_effect=subprocess.TimeoutExpired(cmd="magick", timeout=1),
    ):
        assert not backend.encode(tmp_path / "a.jpg", tmp_path / "a.webp", 80)


def test_pillow_encodes_jpeg(tmp_path):
    source = make_jpeg(tmp_path / "photo.jpg")
    destination = tmp_path / "photo.webp"

    assert PillowBackend().encode(source, destination, 80)
    with Image.open(destination) as im:
        assert im.format == "WEBP"
        assert "exif" not in im.info
        assert "icc_profile" not in im.info


def test_pillow_keeps_alpha(tmp_path):
    source = make_transparent_png(tmp_path / "icon.png")
    destination = tmp_path / "icon.webp"

    assert PillowBackend().encode(source, destination, 95)
    with Image.open(destination) as im:
        assert im.mode == "RGBA"
        assert im.getpixel((0, 0))[3] == 0
        assert im.getpixel((99, 0))[3] == 255


def test_pillow_copies_webp_input(tmp_path):
    source = tmp_path / "already.webp"
    Image.new("RGB", (10, 10), "blue").save(source, format="WEBP")
    destination = tmp_path / "copy.webp"

    assert PillowBackend().encode(source, destination, 80)
    assert destination.read_bytes() == source.read_bytes()


def test_pillow_rejects_unsupported_and_corrupt_input(tmp_path):
    gif = tmp_path / "anim.gif"
    Image.new("P", (10, 10)).save(gif, format="GIF")
    garbage = tmp_path / "broken.jpg"
    garbage.write_bytes(b"not an image")

    backend = PillowBackend()
    assert not backend.encode(gif, tmp_path / "anim.webp", 80)
    assert not backend.encode(garbage, tmp_path / "broken.webp", 80)
    assert not (tmp_path / "anim.webp").exists()


def test_pillow_drops_exif_and_icc_profile(tmp_path):
    exif = Image.Exif()
    exif[0x010F] = "Camera Maker"
    icc = ImageCms.ImageCmsProfile(ImageCms.createProfile("sRGB")).tobytes()
    source = tmp_path / "tagged.jpg"
    Image.new("RGB", (32, 32), "green").save(source, format="JPEG", exif=exif.tobytes(), icc_profile=icc)
    with Image.open(source) as im:
        assert "exif" in im.info
        assert "icc_profile" in im.info

    destination = tmp_path / "tagged.webp"
    assert PillowBackend().encode(source, destination, 80)
    with Image.open(destination) as im:
        assert "exif" not in im.info
        assert "icc_profile" not in im.info
