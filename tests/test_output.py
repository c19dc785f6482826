import imageio
import numpy as np
import PIL.Image

from spiralzoom.generator import FrameSpec
from spiralzoom.gradient import build_gradient
from spiralzoom.output import GifWriter, ImageSequenceWriter, ScalarCsvWriter, write_gradient_preview
from spiralzoom.ranging import RangeState
from spiralzoom.renderer import RenderResult


def make_result(width=6, height=4, red=255):
    field = np.linspace(0.0, 1.0, width * height).reshape(height, width)
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[..., 0] = red
    return RenderResult(
        spec=FrameSpec(index=0, center=0j, radius=1.0),
        field=field,
        image=image,
        value_range=RangeState(0.0, 1.0),
        observed=RangeState(0.0, 1.0),
    )


def test_image_sequence_writer(tmp_path):
    writer = ImageSequenceWriter(tmp_path / "frames", "png")
    path = writer.write(0, "frame-0000", make_result())
    assert path == tmp_path / "frames" / "frame-0000.png"
    with PIL.Image.open(path) as image:
        assert image.size == (6, 4)
        assert image.getpixel((0, 0)) == (255, 0, 0)


def test_image_sequence_writer_uses_its_format(tmp_path):
    writer = ImageSequenceWriter(tmp_path, "bmp")
    path = writer.write(2, "frame-0002", make_result())
    assert path.name == "frame-0002.bmp"
    assert path.exists()


def test_scalar_csv_writer(tmp_path):
    result = make_result()
    path = ScalarCsvWriter(tmp_path).write(0, "frame-0000", result)
    assert path.name == "frame-0000.csv"
    np.testing.assert_allclose(np.loadtxt(path, delimiter=","), result.field)


def test_gif_writer_collects_frames(tmp_path):
    writer = GifWriter(tmp_path / "movie.gif")
    for index in range(3):
        writer.write(index, "frame-%04d" % index, make_result(red=80 * index))
    writer.close()
    frames = imageio.mimread(str(tmp_path / "movie.gif"))
    assert len(frames) == 3


def test_gradient_preview(tmp_path):
    table = build_gradient("spline", table_size=120)
    path = write_gradient_preview(table, tmp_path / "colormap.png")
    with PIL.Image.open(path) as image:
        assert image.size == (120, 48)


def test_writers_keep_dotted_names_intact(tmp_path):
    result = make_result()
    names = ["zoom.v2-0000", "zoom.v2-0001"]
    images = [ImageSequenceWriter(tmp_path, "png").write(i, name, result) for i, name in enumerate(names)]
    tables = [ScalarCsvWriter(tmp_path).write(i, name, result) for i, name in enumerate(names)]
    assert [path.name for path in images] == ["zoom.v2-0000.png", "zoom.v2-0001.png"]
    assert [path.name for path in tables] == ["zoom.v2-0000.csv", "zoom.v2-0001.csv"]
    assert all(path.exists() for path in images + tables)
