import unittest

from lxml import etree

from combiner.assemble import PACKAGE_PATH, assemble, render_container, render_ncx, render_package
from combiner.models import IMAGE, Asset, Chapter, CombinedMetadata, TocPage

OPF = "{http://www.idpf.org/2007/opf}"
DC = "{http://purl.org/dc/elements/1.1/}"
NCX = "{http://www.daisy.org/z3986/2005/ncx/}"
CONTAINER = "{urn:oasis:names:tc:opendocument:xmlns:container}"


def _fixture():
    metadata = CombinedMetadata(title="Alpha & Co", author="Ann", language="en", identifier="urn:uuid:fixed")
    toc = TocPage(id="toc-page", href="Text/toc.xhtml", content="<html/>")
    chapters = [
        Chapter(id="chapter_0_a", href="Text/chapter_0_a.xhtml", content="<p>a</p>", original_href="a.xhtml", book_index=0),
        Chapter(id="chapter_1_b", href="Text/chapter_1_b.xhtml", content="<p>b</p>", original_href="b.xhtml", book_index=1),
    ]
    assets = [
        Asset(
            id="img_0_pic",
            href="Images/img_0_pic_pic.jpg",
            content=b"\xff\xd8",
            media_type="image/jpeg",
            original_href="pic.jpg",
            book_index=0,
            kind=IMAGE,
        )
    ]
    return metadata, toc, chapters, assets


class AssembleTests(unittest.TestCase):
    def test_container_points_at_package(self) -> None:
        root = etree.fromstring(render_container().encode("utf-8"))
        rootfile = root.find(f"{CONTAINER}rootfiles/{CONTAINER}rootfile")
        self.assertEqual(rootfile.get("full-path"), "OEBPS/content.opf")
        self.assertEqual(rootfile.get("media-type"), "application/oebps-package+xml")

    def test_package_document(self) -> None:
        metadata, toc, chapters, assets = _fixture()
        root = etree.fromstring(render_package(metadata, toc, chapters, assets).encode("utf-8"))
        self.assertEqual(root.get("version"), "2.0")
        self.assertEqual(root.get("unique-identifier"), "bookid")
        meta = root.find(f"{OPF}metadata")
        self.assertEqual(meta.findtext(f"{DC}title"), "Alpha & Co")
        self.assertEqual(meta.findtext(f"{DC}creator"), "Ann")
        self.assertEqual(meta.findtext(f"{DC}language"), "en")
        identifier = meta.find(f"{DC}identifier")
        self.assertEqual(identifier.get("id"), "bookid")
        self.assertEqual(identifier.text, "urn:uuid:fixed")

        items = root.findall(f"{OPF}manifest/{OPF}item")
        self.assertEqual(
            [(item.get("id"), item.get("href"), item.get("media-type")) for item in items],
            [
                ("toc-page", "Text/toc.xhtml", "application/xhtml+xml"),
                ("chapter_0_a", "Text/chapter_0_a.xhtml", "application/xhtml+xml"),
                ("chapter_1_b", "Text/chapter_1_b.xhtml", "application/xhtml+xml"),
                ("img_0_pic", "Images/img_0_pic_pic.jpg", "image/jpeg"),
                ("ncx", "toc.ncx", "application/x-dtbncx+xml"),
            ],
        )
        spine = root.find(f"{OPF}spine")
        self.assertEqual(spine.get("toc"), "ncx")
        self.assertEqual(
            [itemref.get("idref") for itemref in spine.findall(f"{OPF}itemref")],
            ["toc-page", "chapter_0_a", "chapter_1_b"],
        )

    def test_navigation_document(self) -> None:
        metadata, _, chapters, _ = _fixture()
        root = etree.fromstring(render_ncx(metadata, chapters).encode("utf-8"))
        self.assertEqual(root.get("version"), "2005-1")
        metas = {meta.get("name"): meta.get("content") for meta in root.findall(f"{NCX}head/{NCX}meta")}
        self.assertEqual(metas["dtb:uid"], "urn:uuid:fixed")
        self.assertEqual(metas["dtb:depth"], "1")
        self.assertEqual(root.findtext(f"{NCX}docTitle/{NCX}text"), "Alpha & Co")
        points = root.findall(f"{NCX}navMap/{NCX}navPoint")
        self.assertEqual([point.get("playOrder") for point in points], ["1", "2"])
        self.assertEqual([point.get("id") for point in points], ["navPoint-1", "navPoint-2"])
        self.assertEqual(
            [point.findtext(f"{NCX}navLabel/{NCX}text") for point in points],
            ["Chapter 1", "Chapter 2"],
        )
        self.assertEqual(
            [point.find(f"{NCX}content").get("src") for point in points],
            ["Text/chapter_0_a.xhtml", "Text/chapter_1_b.xhtml"],
        )

    def test_assemble_emits_every_referenced_file(self) -> None:
        metadata, toc, chapters, assets = _fixture()
        files = assemble(metadata, toc, chapters, assets)
        paths = [item.path for item in files]
        self.assertEqual(
            paths,
            [
                "META-INF/container.xml",
                PACKAGE_PATH,
                "OEBPS/toc.ncx",
                "OEBPS/Text/toc.xhtml",
                "OEBPS/Text/chapter_0_a.xhtml",
                "OEBPS/Text/chapter_1_b.xhtml",
                "OEBPS/Images/img_0_pic_pic.jpg",
            ],
        )
        package = next(item for item in files if item.path == PACKAGE_PATH)
        root = etree.fromstring(package.data)
        hrefs = {f"OEBPS/{item.get('href')}" for item in root.findall(f"{OPF}manifest/{OPF}item")}
        self.assertTrue(hrefs.issubset(set(paths)))
        image = next(item for item in files if item.path.endswith(".jpg"))
        self.assertEqual(image.data, b"\xff\xd8")


if __name__ == "__main__":
    unittest.main()
