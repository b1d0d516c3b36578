import os

from PIL import Image

from psd2json.config import MaxResolution
from psd2json.document import Mask, RasterNode, TextInfo
from psd2json.image import ImageExporter
from psd2json.layout import TreeFlattener

from conftest import group, raster, solid_image, text


def test_page_layout_without_images(page_document):
    layout = TreeFlattener().flatten(page_document)
    assert len(layout) == 1
    page = layout[0]
    assert page["name"] == "Page"
    assert page["type"] == "group"
    assert (page["x"], page["y"], page["width"], page["height"]) == (100, 50, 800, 600)

    bg, title = page["children"]
    assert bg == {"name": "Bg", "type": "image", "x": 0, "y": 0, "width": 800, "height": 600}
    assert title["type"] == "text"
    assert (title["x"], title["y"], title["width"], title["height"]) == (50, 30, 300, 40)
    assert title["text"]["content"] == "Hello"
    assert "children" not in title and "fileName" not in title


def test_page_layout_with_images(page_document, tmp_path):
    flattener = TreeFlattener(image_dir=str(tmp_path / "doc"))
    layout = flattener.flatten(page_document)
    bg = layout[0]["children"][0]
    assert bg["fileName"] == "Bg.png"
    assert (bg["x"], bg["y"], bg["width"], bg["height"]) == (0, 0, 800, 600)
    written = tmp_path / "doc" / "Page" / "Bg.png"
    assert written.exists()
    with Image.open(written) as img:
        assert img.size == (800, 600)


def test_invisible_nodes_and_descendants_are_skipped():
    root = group("Root", 0, 0, 100, 100, [
        group("Hidden", 0, 0, 10, 10, [raster("Inner", 0, 0, 5, 5)], visible=False),
        raster("Shown", 1, 1, 5, 5),
        raster("Off", 1, 1, 5, 5, visible=False),
        group("Empty", 2, 2, 0, 0, []),
    ])
    layout = TreeFlattener().flatten(root)
    assert [n["name"] for n in layout] == ["Shown", "Empty"]
    assert layout[1]["children"] == []


def test_nested_groups_use_parent_relative_coordinates():
    root = group("Root", 0, 0, 1000, 1000, [
        group("A", 100, 100, 500, 500, [
            group("B", 150, 170, 200, 200, [
                raster("Leaf", 160, 200, 10, 10),
            ]),
            text("Caption", 90, 95, 50, 10),
        ]),
    ])
    layout = TreeFlattener().flatten(root)
    a = layout[0]
    b, caption = a["children"]
    leaf = b["children"][0]
    assert (a["x"], a["y"]) == (100, 100)
    assert (b["x"], b["y"]) == (50, 70)
    assert (leaf["x"], leaf["y"]) == (10, 30)
    assert (caption["x"], caption["y"]) == (-10, -5)


def test_group_mask_defines_child_origin():
    root = group("Root", 0, 0, 1000, 1000, [
        group("Masked", 0, 0, 800, 800, [raster("Leaf", 250, 260, 10, 10)],
              mask=Mask(width=100, height=100, left=200, top=200)),
    ])
    layout = TreeFlattener().flatten(root)
    masked = layout[0]
    assert (masked["x"], masked["y"], masked["width"], masked["height"]) == (200, 200, 100, 100)
    assert (masked["children"][0]["x"], masked["children"][0]["y"]) == (50, 60)


def test_deep_nesting_does_not_recurse():
    depth = 3000
    node = raster("Leaf", 0, 0, 1, 1)
    for i in range(depth):
        node = group(f"G{i}", 0, 0, 1, 1, [node])
    layout = TreeFlattener().flatten(group("Root", 0, 0, 1, 1, [node]))
    current = layout[0]
    levels = 0
    while current["type"] == "group":
        current = current["children"][0]
        levels += 1
    assert levels == depth
    assert current["name"] == "Leaf"


def test_failed_export_keeps_node_without_file_name(tmp_path):
    def broken():
        raise RuntimeError("decoder exploded")

    root = group("Root", 0, 0, 100, 100, [
        RasterNode(name="Broken", left=5, top=6, width=10, height=10, load_pixels=broken),
        RasterNode(name="Empty", left=0, top=0, width=10, height=10, load_pixels=lambda: None),
        raster("Fine", 0, 0, 10, 10),
    ])
    layout = TreeFlattener(image_dir=str(tmp_path)).flatten(root)
    broken_node, empty_node, fine = layout
    assert "fileName" not in broken_node
    assert (broken_node["x"], broken_node["y"]) == (5, 6)
    assert "fileName" not in empty_node
    assert fine["fileName"] == "Fine.png"
    assert os.path.exists(tmp_path / "Fine.png")


def test_cropped_export_position_is_parent_relative(tmp_path):
    root = group("Root", 0, 0, 1000, 1000, [
        group("G", 100, 100, 400, 400, [raster("Edge", 300, 300, 200, 200)]),
    ])
    exporter = ImageExporter(MaxResolution(width=400, height=400))
    layout = TreeFlattener(image_dir=str(tmp_path), exporter=exporter).flatten(root)
    edge = layout[0]["children"][0]
    assert (edge["width"], edge["height"]) == (100, 100)
    assert (edge["x"], edge["y"]) == (200, 200)


def test_flatten_mode_writes_unique_names_into_one_directory(tmp_path):
    root = group("Root", 0, 0, 100, 100, [
        group("Page", 0, 0, 50, 50, [raster("Icon", 0, 0, 4, 4), raster("Icon", 4, 4, 4, 4)]),
        raster("Icon", 0, 0, 4, 4),
    ])
    layout = TreeFlattener(image_dir=str(tmp_path), flatten_image_path=True).flatten(root)
    names = [c["fileName"] for c in layout[0]["children"]] + [layout[1]["fileName"]]
    assert names == ["Page_Icon.png", "Page_Icon_1.png", "Icon.png"]
    assert sorted(os.listdir(tmp_path)) == sorted(names)


def test_clipped_raster_uses_clipped_loader(tmp_path):
    plain = solid_image(10, 10, (0, 255, 0, 255))
    clipped_img = solid_image(3, 3, (0, 0, 255, 255))
    root = group("Root", 0, 0, 100, 100, [
        raster("Base", 0, 0, 10, 10, mask=Mask(width=6, height=6, left=1, top=1)),
        RasterNode(name="Clip", left=0, top=0, width=10, height=10, clipped=True,
                   load_pixels=lambda: plain, load_clipped=lambda: clipped_img),
    ])
    layout = TreeFlattener(image_dir=str(tmp_path)).flatten(root)
    clip = layout[1]
    assert (clip["x"], clip["y"], clip["width"], clip["height"]) == (1, 1, 6, 6)
    with Image.open(tmp_path / "Clip.png") as img:
        assert img.size == (3, 3)


def test_text_metadata_is_serialized():
    info = TextInfo(content="Hi", font="Arial-BoldMT", size=24.0, color=(255, 0, 0, 1),
                    alignment="center", transform={"xx": 1.0, "tx": 5.0})
    layout = TreeFlattener().flatten(group("Root", 0, 0, 10, 10, [text("T", 0, 0, 5, 5, text=info)]))
    assert layout[0]["text"] == {
        "content": "Hi",
        "font": "Arial-BoldMT",
        "size": 24.0,
        "color": "rgba(255, 0, 0, 1)",
        "alignment": "center",
        "transform": {"xx": 1.0, "tx": 5.0},
    }


def test_clip_base_tracking_across_siblings():
    base_mask = Mask(width=6, height=7, left=2, top=3)
    root = group("Root", 0, 0, 100, 100, [
        raster("Base", 0, 0, 50, 50, mask=base_mask, visible=False),
        raster("Clip1", 0, 0, 40, 40, clipped=True),
        raster("Clip2", 1, 1, 40, 40, clipped=True),
        raster("Plain", 10, 10, 20, 20),
        raster("Clip3", 11, 12, 5, 5, clipped=True),
    ])
    layout = TreeFlattener().flatten(root)
    geometry = {n["name"]: (n["x"], n["y"], n["width"], n["height"]) for n in layout}
    assert "Base" not in geometry
    assert geometry["Clip1"] == (2, 3, 6, 7)
    assert geometry["Clip2"] == (2, 3, 6, 7)
    assert geometry["Clip3"] == (11, 12, 5, 5)


def test_wide_group_flattens_every_sibling():
    layers = [raster(f"L{i}", i, 0, 1, 1, clipped=bool(i % 2)) for i in range(5000)]
    layout = TreeFlattener().flatten(group("Root", 0, 0, 5000, 1, layers))
    assert len(layout) == 5000
    assert layout[-1]["x"] == 4999
